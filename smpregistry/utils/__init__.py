from .locks import ReadWriteLock

__all__ = ['ReadWriteLock']
