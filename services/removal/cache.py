"""
Export cache for persisting mask/marked outputs of an export attempt
"""
import hashlib
import tempfile
from pathlib import Path
from typing import List, Optional

from .assets import RasterAsset
from .diagnostics import NullDiagnostics


class ExportCache:
    """
    Disk cache for the rasters of one export attempt

    Only files written through `add` are ever removed. A directory passed
    in by the caller is left in place; a temporary directory created here
    is removed by `clear` once it is empty.
    """

    def __init__(self, cache_dir: Optional[str] = None, diagnostics=None):
        """
        Initialize export cache

        Args:
            cache_dir: Directory for cached rasters. If None, creates temp directory
            diagnostics: Diagnostics sink
        """
        if cache_dir is None:
            self.cache_dir = Path(tempfile.mkdtemp(prefix="objectremover_"))
            self.owns_dir = True
        else:
            self.cache_dir = Path(cache_dir)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.owns_dir = False

        self.diagnostics = diagnostics or NullDiagnostics()
        self._paths: List[Path] = []
        self._written: List[Path] = []

    def add(self, asset: RasterAsset, prefix: str = "export") -> Path:
        """
        Save an asset to the cache and return its path

        Args:
            asset: Encoded raster to persist
            prefix: Prefix for cached filename

        Returns:
            Path to cached file
        """
        digest = hashlib.md5(asset.data).hexdigest()[:8]
        filepath = self.cache_dir / f"{prefix}_{digest}.{asset.format.lower()}"

        # Existing files are reused but never claimed for removal
        if not filepath.exists():
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            filepath.write_bytes(asset.data)
            self._written.append(filepath)

        self._paths.append(filepath)
        return filepath

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    def clear(self) -> None:
        """Remove the files this cache wrote, and its temp directory"""
        for filepath in self._written:
            try:
                filepath.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                self.diagnostics.warn("cache:clear_failed", {"path": str(filepath), "message": str(e)})
        self._written = []
        self._paths = []

        if self.owns_dir:
            try:
                self.cache_dir.rmdir()
            except FileNotFoundError:
                pass
            except OSError as e:
                self.diagnostics.warn("cache:clear_failed", {"dir": str(self.cache_dir), "message": str(e)})

    def __len__(self) -> int:
        return len(self._paths)
