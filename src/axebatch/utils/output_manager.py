# src/axebatch/utils/output_manager.py
import re
import shutil
from pathlib import Path
import datetime
import logging
from typing import Dict, Any, Optional, Union


class OutputManager:
    """
    Centralized manager for all file and directory operations of one run.
    Every artifact a run produces lives below ``<base_dir>/<run_id>``.
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        run_id: str,
        timestamp: Optional[str] = None,
        create_dirs: bool = True,
        config: Optional[Dict[str, Any]] = None
    ):
        """Initialize the output manager with the run-scoped structure."""
        self.base_dir = Path(base_dir)
        self.run_id = run_id

        self.timestamp = timestamp or datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        self.run_slug = self.create_safe_slug(run_id)

        root = self.base_dir / self.run_slug
        self.structure = {
            "root": root,
            "screenshots": root / "screenshots",
            "exports": root / "exports",
            "pdf": root / "pdf",
            "logs": root / "logs",
        }

        # Apply any configuration overrides
        if config:
            for key, value in config.items():
                if key in self.structure:
                    self.structure[key] = Path(value)

        self.logger = logging.getLogger("axebatch.output_manager")

        if create_dirs:
            self.create_directories()

    @staticmethod
    def create_safe_slug(value: str, max_length: int = 80) -> str:
        """Create a filesystem-safe identifier from a run id or URL."""
        clean = value.replace("http://", "").replace("https://", "").replace("www.", "")
        slug = re.sub(r"[^A-Za-z0-9]+", "_", clean).strip("_")
        return slug[:max_length] or "item"

    def create_directories(self) -> None:
        """Create all output directories in the structure."""
        for component, directory in self.structure.items():
            directory.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Created directory for {component}: {directory}")

    def get_path(self, component: str, *path_elements) -> Path:
        """Get path for a specific component with consistent handling."""
        if component not in self.structure:
            raise ValueError(f"Unknown component: {component}")
        path = self.structure[component]

        valid_elements = [str(element) for element in path_elements if element is not None]
        if valid_elements:
            return path.joinpath(*valid_elements)
        return path

    def backup_existing_file(self, component: str, filename: str) -> Optional[Path]:
        """Backup an existing file if it exists."""
        file_path = self.get_path(component, filename)
        if not file_path.exists():
            return None

        backup_path = file_path.parent / f"{file_path.stem}_backup_{self.timestamp}{file_path.suffix}"
        try:
            shutil.copy2(file_path, backup_path)
            self.logger.info(f"Created backup of {file_path} to {backup_path}")
            return backup_path
        except OSError as e:
            self.logger.error(f"Error creating backup of {file_path}: {e}")
            return None

    def safe_write_file(self, path: Union[Path, str], content: Union[str, bytes], encoding: str = "utf-8") -> bool:
        """
        Safely write content to a file, ensuring the directory exists.

        Args:
            path: Path to write to
            content: Text or bytes to write
            encoding: File encoding used for text content

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

