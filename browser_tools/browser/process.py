"""
Browser process lifecycle: locate, launch and terminate Chrome.

One ProcessLifecycle interface with a POSIX and a Windows implementation;
get_process_lifecycle() picks the right one for the running platform.
Termination is always graceful first (SIGTERM / taskkill) and forceful only
after the grace period. Signal failures are logged, never raised, so callers
can finish their own cleanup.
"""

import asyncio
import os
import shutil
import signal
import socket
import subprocess
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from browser_tools.errors import ExecutableNotFoundError, LaunchError
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)

EXECUTABLE_NAMES: tuple[str, ...] = (
    "google-chrome",
    "google-chrome-stable",
    "chrome",
    "chromium",
    "chromium-browser",
    "msedge",
)

_EXIT_POLL_INTERVAL = 0.1


@dataclass
class LaunchedBrowser:
    """A browser process we spawned and the endpoint it will listen on."""

    process: subprocess.Popen
    pid: int
    endpoint: str
    port: int


def find_free_port(host: str = "127.0.0.1") -> int:
    """Ask the OS for an unused local TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


def build_launch_args(
    executable: str | Path,
    port: int,
    profile_dir: str | Path,
    *,
    headless: bool,
    extra_args: list[str] | tuple[str, ...] = (),
) -> list[str]:
    """Command line for a debuggable Chrome with an isolated profile."""
    args = [
        str(executable),
        f"--remote-debugging-port={port}",
        f"--user-data-dir={profile_dir}",
        "--no-first-run",
        "--no-default-browser-check",
    ]
    if headless:
        args.append("--headless=new")
    args.extend(extra_args)
    return args


class ProcessLifecycle(ABC):
    """Platform-specific browser process handling."""

    @abstractmethod
    def install_paths(self) -> list[Path]:
        """Well-known install locations checked after PATH lookup."""

    @abstractmethod
    def popen_kwargs(self) -> dict:
        """Extra Popen arguments that detach the browser from our process group."""

    @abstractmethod
    async def signal_graceful(self, pid: int) -> None:
        """Ask the process (tree) to exit."""

    @abstractmethod
    async def signal_kill(self, pid: int) -> None:
        """Force the process (tree) to exit."""

    @abstractmethod
    def is_alive(self, pid: int) -> bool:
        """Whether a process with this pid still exists."""

    def locate_executable(
        self,
        configured: str | None = None,
        candidate_names: tuple[str, ...] = EXECUTABLE_NAMES,
    ) -> Path:
        """Find a Chrome/Chromium executable.

        Order: explicitly configured path, names on PATH, install locations.

        Raises:
            ExecutableNotFoundError: If nothing usable was found.
        """
        tried: list[str] = []

        if configured:
            found = shutil.which(configured)
            if found:
                return Path(found)
            tried.append(configured)

        for name in candidate_names:
            found = shutil.which(name)
            if found:
                return Path(found)
            tried.append(name)

        for path in self.install_paths():
            if path.is_file() and os.access(path, os.X_OK):
                return path
            tried.append(str(path))

        raise ExecutableNotFoundError(tried)

    def launch(
        self,
        executable: str | Path,
        port: int,
        profile_dir: str | Path,
        *,
        headless: bool,
        extra_args: list[str] | tuple[str, ...] = (),
        host: str = "127.0.0.1",
    ) -> LaunchedBrowser:
        """Spawn the browser without waiting for it to become ready.

        Raises:
            LaunchError: If the OS refuses to start the process.
        """
        Path(profile_dir).mkdir(parents=True, exist_ok=True)
        args = build_launch_args(
            executable, port, profile_dir, headless=headless, extra_args=extra_args
        )
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                **self.popen_kwargs(),
            )
        except OSError as e:
            raise LaunchError(str(executable), str(e)) from e

        logger.info(
            "Browser process launched",
            pid=process.pid,
            port=port,
            headless=headless,
        )
        return LaunchedBrowser(
            process=process,
            pid=process.pid,
            endpoint=f"ws://{host}:{port}",
            port=port,
        )

    async def _wait_for_exit(self, pid: int, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not self.is_alive(pid):
                return True
            await asyncio.sleep(_EXIT_POLL_INTERVAL)
        return not self.is_alive(pid)

    async def terminate(self, pid: int, grace_period: float = 5.0) -> bool:
        """Stop a browser we do not hold a handle for (persistent session).

        Returns:
            True if the process is gone afterwards. Failures are logged.
        """
        try:
            await self.signal_graceful(pid)
        except ProcessLookupError:
            logger.warning("Browser process already gone", pid=pid)
            return True
        except OSError as e:
            logger.warning("Failed to signal browser process", pid=pid, error=str(e))
            return False

        if await self._wait_for_exit(pid, grace_period):
            logger.info("Browser process stopped", pid=pid)
            return True

        logger.warning("Browser did not exit in time, killing", pid=pid, grace_period=grace_period)
        try:
            await self.signal_kill(pid)
        except ProcessLookupError:
            return True
        except OSError as e:
            logger.warning("Failed to kill browser process", pid=pid, error=str(e))
            return False
        return await self._wait_for_exit(pid, grace_period)

    async def terminate_process(
        self, process: subprocess.Popen, grace_period: float = 5.0
    ) -> bool:
        """Stop a browser we spawned in this invocation (temporary session)."""
        if process.poll() is not None:
            return True

        try:
            await self.signal_graceful(process.pid)
        except OSError as e:
            logger.warning("Failed to signal browser process", pid=process.pid, error=str(e))

        deadline = time.monotonic() + grace_period
        while time.monotonic() < deadline:
            if process.poll() is not None:
                return True
            await asyncio.sleep(_EXIT_POLL_INTERVAL)

        logger.warning("Browser did not exit in time, killing", pid=process.pid)
        try:
            await self.signal_kill(process.pid)
        except OSError as e:
            logger.warning("Failed to kill browser process", pid=process.pid, error=str(e))
        try:
            await asyncio.to_thread(process.wait, grace_period)
        except subprocess.TimeoutExpired:
            logger.warning("Browser process survived kill", pid=process.pid)
            return False
        return True


class PosixProcessLifecycle(ProcessLifecycle):
    """Linux and macOS."""

    def install_paths(self) -> list[Path]:
        if sys.platform == "darwin":
            return [
                Path("/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"),
                Path("/Applications/Chromium.app/Contents/MacOS/Chromium"),
                Path.home() / "Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
            ]
        return [
            Path("/usr/bin/google-chrome"),
            Path("/usr/bin/chromium"),
            Path("/usr/bin/chromium-browser"),
            Path("/snap/bin/chromium"),
            Path("/opt/google/chrome/chrome"),
        ]

    def popen_kwargs(self) -> dict:
        return {"start_new_session": True}

    async def signal_graceful(self, pid: int) -> None:
        os.kill(pid, signal.SIGTERM)

    async def signal_kill(self, pid: int) -> None:
        os.kill(pid, signal.SIGKILL)

    def is_alive(self, pid: int) -> bool:
        try:
            # Reap if it is our own child, otherwise a zombie looks alive.
            os.waitpid(pid, os.WNOHANG)
        except ChildProcessError:
            pass
        except OSError:
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True


class WindowsProcessLifecycle(ProcessLifecycle):
    """Windows: taskkill for the whole process tree."""

    def install_paths(self) -> list[Path]:
        roots = [
            os.environ.get("PROGRAMFILES", r"C:\Program Files"),
            os.environ.get("PROGRAMFILES(X86)", r"C:\Program Files (x86)"),
            os.environ.get("LOCALAPPDATA", ""),
        ]
        paths: list[Path] = []
        for root in filter(None, roots):
            paths.append(Path(root) / "Google" / "Chrome" / "Application" / "chrome.exe")
            paths.append(Path(root) / "Chromium" / "Application" / "chrome.exe")
            paths.append(Path(root) / "Microsoft" / "Edge" / "Application" / "msedge.exe")
        return paths

    def popen_kwargs(self) -> dict:
        flags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0) | getattr(
            subprocess, "DETACHED_PROCESS", 0
        )
        return {"creationflags": flags}

    async def _taskkill(self, pid: int, *flags: str) -> None:
        proc = await asyncio.create_subprocess_exec(
            "taskkill",
            *flags,
            "/T",
            "/PID",
            str(pid),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            if not self.is_alive(pid):
                raise ProcessLookupError(message or f"process {pid} not found")
            raise OSError(message or f"taskkill exited with {proc.returncode}")

    async def signal_graceful(self, pid: int) -> None:
        await self._taskkill(pid)

    async def signal_kill(self, pid: int) -> None:
        await self._taskkill(pid, "/F")

    def is_alive(self, pid: int) -> bool:
        result = subprocess.run(
            ["tasklist", "/FI", f"PID eq {pid}", "/NH"],
            capture_output=True,
            text=True,
            check=False,
        )
        return str(pid) in result.stdout


def get_process_lifecycle() -> ProcessLifecycle:
    """Pick the implementation for the running platform."""
    if sys.platform == "win32":
        return WindowsProcessLifecycle()
    return PosixProcessLifecycle()
