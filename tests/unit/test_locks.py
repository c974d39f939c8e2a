"""Tests for the reader/writer lock."""

import threading
import time

from smpregistry.utils.locks import ReadWriteLock


class TestReadWriteLock:

    def test_readers_share(self):
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=2)

        def reader():
            with lock.read():
                both_inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert not both_inside.broken

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []

        def writer():
            with lock.write():
                events.append('write-start')
                time.sleep(0.05)
                events.append('write-end')

        def reader():
            with lock.read():
                events.append('read')

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        time.sleep(0.01)
        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        writer_thread.join()
        reader_thread.join()

        assert events == ['write-start', 'write-end', 'read']

    def test_release_on_exception(self):
        lock = ReadWriteLock()

        try:
            with lock.write():
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        acquired = threading.Event()

        def reader():
            with lock.read():
                acquired.set()

        thread = threading.Thread(target=reader)
        thread.start()
        thread.join(timeout=2)
        assert acquired.is_set()
