"""Privileged Windows cleanup run after the main pass."""

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Callable, Optional

from dustbuster.models import DeepCleanResult

logger = logging.getLogger(__name__)

Runner = Callable[[str], subprocess.CompletedProcess]

ADMIN_CHECK = "net session"

DEEP_CLEAN_COMMANDS = [
    'PowerShell -NoLogo -NoProfile -Command "Clear-RecycleBin -Force"',
    "dism /online /Cleanup-Image /StartComponentCleanup /ResetBase",
    "RunDll32.exe InetCpl.cpl,ClearMyTracksByProcess 8",
]

UPDATE_SERVICES = ["wuauserv", "bits"]


def run_command(command: str) -> subprocess.CompletedProcess:
    """Run a shell command and capture its output."""
    return subprocess.run(
        command,
        shell=True,
        capture_output=True,
        text=True,
        timeout=900,  # DISM can be slow
    )


class DeepCleaner:
    """
    Runs Windows maintenance commands that need administrator rights.

    Every command is attempted even if an earlier one fails. The command
    runner can be replaced for testing.
    """

    def __init__(self, runner: Optional[Runner] = None, platform: Optional[str] = None):
        self.runner = runner or run_command
        self.platform = platform or sys.platform

    def _run(self, command: str) -> DeepCleanResult:
        try:
            result = self.runner(command)
        except subprocess.TimeoutExpired:
            return DeepCleanResult(command=command, success=False, error="Command timed out")
        except OSError as e:
            return DeepCleanResult(command=command, success=False, error=str(e))

        if result.returncode == 0:
            return DeepCleanResult(command=command, success=True)
        return DeepCleanResult(
            command=command,
            success=False,
            error=(result.stderr or "").strip() or "Command failed",
        )

    def is_admin(self) -> bool:
        """Check for administrator rights."""
        return self._run(ADMIN_CHECK).success

    def _clear_event_logs(self) -> list[DeepCleanResult]:
        listing = self._run_output("wevtutil.exe el")
        if listing is None:
            return [DeepCleanResult(command="wevtutil.exe el", success=False, error="Cannot list event logs")]
        return [
            self._run(f'wevtutil.exe cl "{name}"')
            for name in listing.splitlines()
            if name.strip()
        ]

    def _run_output(self, command: str) -> Optional[str]:
        try:
            result = self.runner(command)
        except (subprocess.TimeoutExpired, OSError):
            return None
        return result.stdout if result.returncode == 0 else None

    def _reset_update_cache(self) -> list[DeepCleanResult]:
        windir = Path(os.environ.get("WINDIR", "C:/Windows"))
        results = [self._run(f"net stop {service}") for service in UPDATE_SERVICES]
        command = f"remove {windir / 'SoftwareDistribution'}"
        try:
            shutil.rmtree(windir / "SoftwareDistribution")
            results.append(DeepCleanResult(command=command, success=True))
        except OSError as e:
            results.append(DeepCleanResult(command=command, success=False, error=str(e)))
        results.extend(self._run(f"net start {service}") for service in UPDATE_SERVICES)
        return results

    def run(self) -> list[DeepCleanResult]:
        """
        Run every deep-clean step.

        Returns:
            One result per command; empty when not on Windows or not admin
        """
        if self.platform != "win32":
            logger.info("Deep cleaning is only available on Windows.")
            return []
        if not self.is_admin():
            logger.error("Deep cleaning requires administrator rights.")
            return []

        results = [self._run(command) for command in DEEP_CLEAN_COMMANDS]
        results.extend(self._clear_event_logs())
        results.extend(self._reset_update_cache())

        for result in results:
            if result.success:
                logger.debug(f"Deep clean: {result.command}")
            else:
                logger.warning(f"Deep clean step failed: {result.command}: {result.error}")
        return results
