"""Open a path for reading while other processes rename or delete it."""
import errno
import os
import sys
from typing import BinaryIO, Callable

from tailfollow.errors import NotFoundError

PathOpener = Callable[[str], BinaryIO]


def _not_found(path: str) -> NotFoundError:
    return NotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)


def _open_posix(path: str) -> BinaryIO:
    try:
        return open(path, "rb", buffering=0)
    except FileNotFoundError as exc:
        raise _not_found(path) from exc


def _open_windows(path: str) -> BinaryIO:
    import ctypes
    import msvcrt
    from ctypes import wintypes

    generic_read = 0x80000000
    share_all = 0x1 | 0x2 | 0x4  # FILE_SHARE_READ | WRITE | DELETE
    open_existing = 3
    file_attribute_normal = 0x80
    invalid_handle = wintypes.HANDLE(-1).value

    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    create_file = kernel32.CreateFileW
    create_file.restype = wintypes.HANDLE
    create_file.argtypes = [
        wintypes.LPCWSTR,
        wintypes.DWORD,
        wintypes.DWORD,
        wintypes.LPVOID,
        wintypes.DWORD,
        wintypes.DWORD,
        wintypes.HANDLE,
    ]

    handle = create_file(path, generic_read, share_all, None, open_existing, file_attribute_normal, None)
    if handle == invalid_handle:
        code = ctypes.get_last_error()
        # ERROR_FILE_NOT_FOUND, ERROR_PATH_NOT_FOUND
        if code in (2, 3):
            raise _not_found(path)
        raise ctypes.WinError(code)
    fd = msvcrt.open_osfhandle(handle, os.O_RDONLY | os.O_BINARY)
    return os.fdopen(fd, "rb", buffering=0)


def open_path(path: str) -> BinaryIO:
    """Open ``path`` as an unbuffered binary handle.

    Raises :class:`NotFoundError` when nothing exists at ``path``.
    """
    if not path:
        raise _not_found(path)
    if sys.platform == "win32":
        return _open_windows(path)
    return _open_posix(path)
