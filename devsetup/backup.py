import shutil
from pathlib import Path
from typing import Union


class BackupDirectory:
    """
    Run-scoped directory that receives every file displaced by the setup.

    The directory is created on first use and never removed, so the
    operator can recover anything after the process exits.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @property
    def exists(self) -> bool:
        return self.path.is_dir()

    def ensure(self) -> Path:
        self.path.mkdir(parents=True, exist_ok=True)
        return self.path

    def copy_in(self, source: Union[str, Path], name: str) -> Path:
        """Copy a file verbatim into the backup directory as `<name>.backup`."""
        destination = self.ensure() / f"{name}.backup"
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(source), str(destination))
        return destination

    def move_in(self, source: Union[str, Path], name: str) -> Path:
        """Move a file or directory into the backup directory under `name`."""
        destination = self.ensure() / name
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
        return destination
