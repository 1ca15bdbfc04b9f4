# src/a11yscan/utils/output_manager.py
import datetime
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union


class OutputManager:
    """
    Centralized manager for output files and directories.
    Every scanned site gets its own slug directory with a fixed layout.
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        domain: str,
        timestamp: Optional[str] = None,
        create_dirs: bool = True,
        config: Optional[Dict[str, Any]] = None
    ):
        self.base_dir = Path(base_dir).expanduser()
        self.domain = domain
        self.timestamp = timestamp or datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        self.domain_slug = self._create_safe_slug(domain)

        root = self.base_dir / self.domain_slug
        self.structure = {
            "root": root,
            "reports": root / "reports",
            "screenshots": root / "screenshots",
            "snapshots": root / "snapshots",
            "logs": root / "logs",
            "temp": root / "temp",
        }

        if config:
            for key, value in config.items():
                if key in self.structure:
                    self.structure[key] = Path(value)

        self.logger = logging.getLogger("a11yscan.output_manager")

        if create_dirs:
            self.create_directories()

    @staticmethod
    def _create_safe_slug(domain: str) -> str:
        """Filesystem-safe identifier from a domain or URL."""
        clean_domain = domain.replace("http://", "").replace("https://", "").replace("www.", "")
        clean_domain = clean_domain.split('/')[0]
        return "".join(c if c.isalnum() else "_" for c in clean_domain)

    @staticmethod
    def page_slug(url: str, max_length: int = 80) -> str:
        """Filesystem-safe identifier for a single page URL."""
        clean = url.replace("http://", "").replace("https://", "").rstrip("/")
        slug = "".join(c if c.isalnum() else "_" for c in clean)
        return slug[:max_length] or "page"

    def create_directories(self) -> None:
        for component, directory in self.structure.items():
            directory.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Created directory for {component}: {directory}")

    def get_path(self, component: str, *path_elements) -> Path:
        if component not in self.structure:
            raise ValueError(f"Unknown component: {component}")
        path = self.structure[component]
        valid_elements = [str(element) for element in path_elements if element is not None]
        if valid_elements:
            return path.joinpath(*valid_elements)
        return path

    def get_timestamped_path(self, component: str, base_filename: str, ext: str = "") -> Path:
        if ext and not ext.startswith("."):
            ext = f".{ext}"
        return self.get_path(component, f"{base_filename}_{self.timestamp}{ext}")

    def safe_write_file(self, path: Union[Path, str], content: Union[str, bytes], encoding: str = "utf-8") -> bool:
        """
        Write content to a file, creating the parent directory.

        Returns:
            bool: True if successful, False otherwise
        """
        try:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding=encoding)
            self.logger.debug(f"Successfully wrote content to {path}")
            return True
        except OSError as e:
            self.logger.error(f"Error writing file {path}: {e}")
            return False
