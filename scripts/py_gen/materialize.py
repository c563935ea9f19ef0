"""
File materialization module

Writes generated artifacts, leaving files whose content is unchanged
untouched so that build systems do not see spurious modifications.
"""

import os
import threading

from loguru import logger

from .errors import MaterializeError


class FileMaterializer:
    """Idempotent writer for generated artifacts"""

    def __init__(self):
        self.written: list[str] = []
        self.skipped: list[str] = []
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, path: str) -> threading.Lock:
        key = os.path.abspath(path)
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def write_if_different(self, path: str, content: str) -> bool:
        """Write content unless the file already holds it, returns True if written"""
        with self._lock_for(path):
            data = content.encode('utf-8')
            try:
                with open(path, 'rb') as f:
                    if f.read() == data:
                        logger.debug(f'Unchanged {path}')
                        self.skipped.append(path)
                        return False
            except FileNotFoundError:
                pass
            except OSError as e:
                raise MaterializeError(f'cannot read existing file: {e.strerror}', path) from e

            directory = os.path.dirname(path)
            try:
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(path, 'wb') as f:
                    f.write(data)
            except OSError as e:
                raise MaterializeError(f'cannot write file: {e.strerror}', path) from e

            logger.info(f'Wrote {path}')
            self.written.append(path)
            return True
