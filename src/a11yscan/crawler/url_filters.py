# -*- coding: utf-8 -*-
"""
URL filtering and normalization for the site crawler.
"""

import html
import re
from typing import Optional
from urllib.parse import urldefrag, urljoin, urlparse, urlunparse


class URLFilters:
    """
    Static helpers deciding which links are worth scanning and how a URL is
    keyed in the crawler's visited set.
    """

    # File extensions that never lead to an HTML page
    EXCLUDED_EXTENSIONS = {
        # Images
        '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.svg', '.webp', '.ico', '.tiff',
        # Documents
        '.pdf', '.doc', '.docx', '.ppt', '.pptx', '.xls', '.xlsx', '.csv',
        # Audio and video
        '.mp3', '.mp4', '.avi', '.mov', '.flv', '.wmv', '.wav', '.ogg', '.webm',
        # Archives
        '.zip', '.rar', '.tar', '.gz', '.7z',
        # Assets
        '.css', '.js', '.json', '.xml', '.rss', '.woff', '.woff2', '.ttf',
        # Other
        '.txt', '.md', '.exe', '.dmg', '.iso', '.apk', '.ipa'
    }

    ALLOWED_SCHEMES = {'http', 'https'}

    EXCLUDED_PATTERNS = [
        r'^javascript:',
        r'^mailto:',
        r'^tel:',
        r'^data:',
        r'^#',
        r'^about:',
        r'^file:',
        r'^ftp:',
    ]

    # Path fragments of static files, admin areas and session endpoints
    EXCLUDED_PATHS = [
        '/wp-content/uploads/',
        '/assets/',
        '/static/',
        '/images/',
        '/fonts/',
        '/download/',
        '/downloads/',
        '/wp-admin/',
        '/wp-json/',
        '/wp-login',
        '/wp-includes/',
        '/xmlrpc.php',
        '/cdn-cgi/',
        '/logout',
        '/signout',
    ]

    @staticmethod
    def is_valid_url(url: Optional[str]) -> bool:
        """
        Check whether a URL is worth scanning.

        Args:
            url: Absolute URL

        Returns:
            bool: True for http(s) URLs that are not static files or excluded paths
        """
        if not url or not isinstance(url, str):
            return False

        url = html.unescape(url.strip())

        for pattern in URLFilters.EXCLUDED_PATTERNS:
            if re.match(pattern, url, re.IGNORECASE):
                return False

        if not URLFilters.is_parseable(url):
            return False

        parsed = urlparse(url)
        if parsed.scheme.lower() not in URLFilters.ALLOWED_SCHEMES or not parsed.netloc:
            return False

        path = parsed.path.lower()
        if any(path.endswith(ext) for ext in URLFilters.EXCLUDED_EXTENSIONS):
            return False

        if any(fragment in path for fragment in URLFilters.EXCLUDED_PATHS):
            return False

        return True

    @staticmethod
    def is_parseable(url: str) -> bool:
        """False for URLs urllib rejects, such as an unclosed IPv6 bracket or a port out of range."""
        try:
            urlparse(url).port
        except ValueError:
            return False
        return True

    @staticmethod
    def normalize_url(url: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
        """
        Resolve ``url`` against ``base_url``, drop the fragment and add a
        scheme when missing.

        Returns None for links that cannot be parsed.
        """
        if not url:
            return None

        url = html.unescape(url.strip())
        try:
            if base_url:
                url = urljoin(base_url, url)
            url, _ = urldefrag(url)
            has_scheme = bool(urlparse(url).scheme)
        except ValueError:
            return None

        if not has_scheme:
            if url.startswith('//'):
                url = 'https:' + url
            else:
                url = 'https://' + url
        return url if URLFilters.is_parseable(url) else None

    @staticmethod
    def visit_key(url: str) -> str:
        """
        Key under which a URL is visited at most once per crawl.

        Scheme and host are lowercased, the default port, the query and the
        fragment are dropped, and the path loses its trailing slash (``/``
        for an empty path).
        """
        parsed = urlparse(html.unescape(url.strip()))
        scheme = parsed.scheme.lower()
        host = (parsed.hostname or '').lower()
        port = parsed.port
        if port and not ((scheme == 'http' and port == 80) or (scheme == 'https' and port == 443)):
            host = f"{host}:{port}"
        path = parsed.path.rstrip('/') or '/'
        return urlunparse((scheme, host, path, '', '', ''))

    @staticmethod
    def get_domain(url: Optional[str]) -> Optional[str]:
        """
        Host of a URL without ``www.``, or the input itself when it is a bare domain.
        """
        if not url:
            return None

        if '/' not in url and '://' not in url:
            domain = url.lower()
            if domain.startswith('www.'):
                domain = domain[4:]
            return domain

        netloc = (urlparse(url).hostname or '').lower()
        if netloc.startswith('www.'):
            netloc = netloc[4:]
        return netloc or None

    @staticmethod
    def is_same_domain(url1: str, url2: str) -> bool:
        domain1 = URLFilters.get_domain(url1)
        domain2 = URLFilters.get_domain(url2)
        return bool(domain1 and domain2 and domain1 == domain2)
