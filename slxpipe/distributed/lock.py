"""Filesystem marker lock keeping periodic scripts to a single running instance.

There is no expiry: a marker left behind by a crashed process blocks later
runs until an operator removes it.
"""
import contextlib
import os
import socket

class Lock(object):
    def __init__(self, path):
        self.path = path

    def __repr__(self):
        return "Lock(%s)" % self.path

    @property
    def locked(self):
        return os.path.exists(self.path)

    def try_acquire(self):
        """Atomically create the marker, returning False if it already exists.
        """
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w") as out_handle:
            out_handle.write("%s %s\n" % (socket.gethostname(), os.getpid()))
        return True

    def release(self):
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

@contextlib.contextmanager
def acquired(lock):
    """Hold the lock for the duration of the block, releasing it on any exit.

    Yields False without touching the marker when another instance holds it.
    """
    if not lock.try_acquire():
        yield False
        return
    try:
        yield True
    finally:
        lock.release()
