"""
Files Module
============

Context-managed file handles shared by the IDX codec, the TOML
configuration layer and the JSON run reports.

    with BinaryFile(path) as f:
        raw = f.read()

    with TextFile(report_path, mode="w") as f:
        f.write(json.dumps(report))
"""

import logging
from abc import ABC
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, AnyStr, ClassVar, FrozenSet, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class File(ABC):
    """
    A path plus an optional open handle.

    Subclasses declare which modes they accept and the payload type they
    read and write; opening, closing and the context-manager protocol live
    here.

    Attributes:
        path: Path to the file
        mode: Open mode
        encoding: Text encoding (None for binary files)
    """

    MODES: ClassVar[FrozenSet[str]] = frozenset()
    PAYLOAD: ClassVar[type] = bytes

    path: Union[str, Path]
    mode: str = "r"
    encoding: Optional[str] = None
    _handle: Optional[IO] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if self.mode not in self.MODES:
            raise ValueError(
                f"Invalid mode '{self.mode}' for {type(self).__name__}. Must be one of {sorted(self.MODES)}"
            )

    @property
    def is_open(self) -> bool:
        return self._handle is not None and not self._handle.closed

    @property
    def handle(self) -> Optional[IO]:
        """Underlying handle, for readers such as tomllib.load that want a file object."""
        return self._handle

    @property
    def readable(self) -> bool:
        return "r" in self.mode or "+" in self.mode

    @property
    def writable(self) -> bool:
        return self.mode[0] in "wax" or "+" in self.mode

    def open(self) -> "File":
        """
        Open the file.

        Raises:
            FileNotFoundError: If the file is opened for reading and does not exist
            OSError: If the file cannot be opened
        """
        if self.is_open:
            return self
        try:
            self._handle = open(self.path, mode=self.mode, encoding=self.encoding)
        except FileNotFoundError as err:
            raise FileNotFoundError(f"File not found: {self.path}") from err
        except OSError as err:
            raise OSError(f"Cannot open {self.path} ({self.mode}): {err}") from err
        logger.debug(f"Opened {self.path} ({self.mode})")
        return self

    def close(self) -> None:
        if self.is_open:
            self._handle.close()
        self._handle = None

    def read(self, size: int = -1) -> AnyStr:
        """Read ``size`` units (bytes or characters), or everything when negative."""
        if not self.is_open:
            raise OSError(f"File is not open: {self.path}")
        if not self.readable:
            raise OSError(f"File is not open for reading: {self.path}")
        return self._handle.read(size)

    def write(self, content: AnyStr) -> int:
        """
        Write ``content`` and return the number of units written.

        Raises:
            OSError: If the file is not open for writing
            TypeError: If content has the wrong payload type
        """
        if not self.is_open:
            raise OSError(f"File is not open: {self.path}")
        if not self.writable:
            raise OSError(f"File is not open for writing: {self.path}")
        if not isinstance(content, self.PAYLOAD):
            raise TypeError(f"{type(self).__name__} writes {self.PAYLOAD.__name__}, not {type(content).__name__}")
        return self._handle.write(content)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


@dataclass
class TextFile(File):
    """UTF-8 text file, used for TOML configuration and JSON reports."""

    MODES: ClassVar[FrozenSet[str]] = frozenset({"r", "w", "a", "x", "r+", "w+"})
    PAYLOAD: ClassVar[type] = str

    mode: str = "r"
    encoding: Optional[str] = "utf-8"


@dataclass
class BinaryFile(File):
    """Raw byte file, used for IDX payloads and TOML parsing."""

    MODES: ClassVar[FrozenSet[str]] = frozenset({"rb", "wb", "ab", "xb", "r+b", "w+b"})
    PAYLOAD: ClassVar[type] = bytes

    mode: str = "rb"
    encoding: Optional[str] = None

    def write(self, content) -> int:
        if isinstance(content, (bytearray, memoryview)):
            content = bytes(content)
        return super().write(content)


def ensure_parent_dir(filepath: Union[str, Path]) -> Path:
    """Create the parent directory of ``filepath`` if needed and return the path."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path
