import asyncio
import logging
from typing import List, Set, Tuple


class ProcessManager:
    """
    Tracks probe subprocesses so they can be reaped on timeout and cleaned up
    on shutdown.

    ``max_concurrent`` caps the number of live subprocesses; the exporter sizes
    it to the endpoint count, which allows one outstanding probe per endpoint.
    """
    def __init__(self, max_concurrent: int = 50) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._active_processes: Set[asyncio.subprocess.Process] = set()
        self._lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def active_count(self) -> int:
        return len(self._active_processes)

    async def create_process(self, *args, **kwargs) -> asyncio.subprocess.Process:
        """
        Create a subprocess and register it for cleanup.
        Blocks if the concurrency limit is reached.
        """
        await self._semaphore.acquire()

        try:
            process = await asyncio.create_subprocess_exec(*args, **kwargs)
        except BaseException:
            self._semaphore.release()
            raise

        async with self._lock:
            self._active_processes.add(process)
        return process

    async def unregister(self, process: asyncio.subprocess.Process) -> None:
        """Unregister a finished process and release its slot. Idempotent."""
        async with self._lock:
            if process in self._active_processes:
                self._active_processes.discard(process)
                self._semaphore.release()

    async def _kill_and_reap(self, process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            logging.error(f"Failed to reap timed-out process: {process.pid}")

    async def run_command(
        self,
        cmd: List[str],
        timeout: float | None = None,
        encoding: str | None = None,
        errors: str = 'strict',
        **kwargs
    ) -> Tuple[str | bytes, str | bytes, int]:
        """
        Run a command and return (stdout, stderr, returncode).

        Raises:
            asyncio.TimeoutError: the command exceeded ``timeout``; the process
                has been killed and reaped.
        """
        kwargs.setdefault('stdout', asyncio.subprocess.PIPE)
        kwargs.setdefault('stderr', asyncio.subprocess.PIPE)

        process = await self.create_process(*cmd, **kwargs)

        try:
            if timeout:
                stdout_data, stderr_data = await asyncio.wait_for(process.communicate(), timeout=timeout)
            else:
                stdout_data, stderr_data = await process.communicate()

            returncode = process.returncode if process.returncode is not None else -1

            if encoding:
                stdout_str = stdout_data.decode(encoding, errors=errors) if stdout_data else ""
                stderr_str = stderr_data.decode(encoding, errors=errors) if stderr_data else ""
                return stdout_str, stderr_str, returncode

            return stdout_data, stderr_data, returncode

        except asyncio.TimeoutError:
            logging.debug(f"Command timed out after {timeout}s: {' '.join(cmd)}")
            await self._kill_and_reap(process)
            raise
        except asyncio.CancelledError:
            # Shutdown: do not leave the child running
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
            raise
        finally:
            await self.unregister(process)

    async def cleanup(self) -> None:
        """Terminate all tracked processes."""
        async with self._lock:
            if not self._active_processes:
                return

            count = len(self._active_processes)
            logging.info(f"Cleaning up {count} active subprocesses...")
            processes = list(self._active_processes)
            self._active_processes.clear()

        for proc in processes:
            try:
                if proc.returncode is None:
                    proc.terminate()
            except ProcessLookupError:
                pass

        await asyncio.sleep(0.1)

        for proc in processes:
            try:
                if proc.returncode is None:
                    logging.warning(f"Process {proc.pid} did not terminate, killing...")
                    proc.kill()
            except ProcessLookupError:
                pass
