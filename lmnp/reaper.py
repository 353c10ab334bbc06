import logging
import os

from lmnp.timers import start_timer

logger = logging.getLogger(__name__)


def file_identity(file_path):
    """``(inode, mtime)`` of *file_path*, or ``None`` when it cannot be read."""
    try:
        stat = os.stat(file_path)
    except OSError:
        return None
    return stat.st_ino, stat.st_mtime_ns


class FileReaper:
    """Deletes generated files once their retention window is over.

    Independent from the token registry: a file is removed on schedule
    whether or not it was downloaded and whether or not its token is still
    registered.  A file regenerated under the same name after scheduling is
    left to the timer of the request that produced it.
    """

    def __init__(self, scheduler=start_timer):
        self._schedule = scheduler

    def schedule_deletion(self, file_path, delay_seconds):
        self._schedule(delay_seconds, self.delete, file_path, file_identity(file_path))

    def delete(self, file_path, identity=None):
        """Best effort removal; failures are only logged."""
        if identity is not None:
            current = file_identity(file_path)
            if current is not None and current != identity:
                logger.info("Reaper: %s was regenerated since scheduling, kept", file_path)
                return
        try:
            os.remove(file_path)
        except FileNotFoundError:
            logger.warning("Reaper: %s already gone", file_path)
        except OSError as exc:
            logger.warning("Reaper: could not delete %s: %s", file_path, exc)
        else:
            logger.info("Reaper: deleted %s", file_path)
