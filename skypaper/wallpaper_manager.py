"""Wallpaper management for the supported desktops."""

import ctypes
import logging
import os
import shutil
import subprocess
import sys
import time
from pathlib import Path


logger = logging.getLogger(__name__)

SPI_SETDESKWALLPAPER = 20
SPIF_UPDATEINIFILE = 0x01
SPIF_SENDWININICHANGE = 0x02


class WallpaperManager:
    """Applies a wallpaper through the desktop's own tooling."""

    def __init__(self, backend: str = "auto", monitor: str = ""):
        """
        Initialize wallpaper manager.

        Args:
            backend: One of 'auto', 'hyprpaper', 'swww', 'gnome', 'feh',
                'macos', 'windows'
            monitor: Monitor name for hyprpaper/swww (empty string = all monitors)
        """
        self.backend = backend
        self.monitor = monitor

    def _run_command(self, cmd: list[str]) -> bool:
        """
        Execute a wallpaper command.

        Args:
            cmd: Command as list of strings

        Returns:
            True if successful, False otherwise
        """
        try:
            subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=5
            )
            return True
        except subprocess.CalledProcessError as e:
            error_msg = (e.stderr + e.stdout).lower() if e.stderr or e.stdout else ""

            # Check if hyprpaper IPC is disabled
            if cmd[0] == 'hyprctl' and ('disabled' in error_msg or ('ipc' in error_msg and 'off' in error_msg)):
                logger.error(
                    "Hyprpaper IPC appears to be disabled.\n"
                    "To enable IPC:\n"
                    "  1. Edit ~/.config/hypr/hyprpaper.conf\n"
                    "  2. Change 'ipc = off' to 'ipc = on'\n"
                    "  3. Restart hyprpaper: systemctl --user restart hyprpaper.service"
                )
            # Preload is not a request in hyprpaper 0.8.x
            elif 'unknown' in error_msg and 'request' in error_msg:
                logger.debug(f"Command not supported (ignored): {cmd[2] if len(cmd) > 2 else 'unknown'}")
            else:
                logger.error(f"Command failed: {' '.join(cmd)}\n{e.stderr or e.stdout}")
            return False
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out: {' '.join(cmd)}")
            return False
        except FileNotFoundError:
            logger.error(f"Command not found: {cmd[0]}")
            return False

    def is_running(self, process: str) -> bool:
        """
        Check if a process is running.

        Returns:
            True if the process is running, False otherwise
        """
        try:
            result = subprocess.run(
                ['pgrep', '-x', process],
                capture_output=True,
                timeout=2
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

    def wait_for_process(self, process: str, max_wait: int = 5) -> bool:
        """
        Wait for a wallpaper daemon to be ready.

        Args:
            process: Process name
            max_wait: Maximum seconds to wait

        Returns:
            True if the daemon is ready, False if timeout
        """
        for i in range(max_wait):
            if self.is_running(process):
                return True
            time.sleep(1)

        logger.error(f"{process} not ready after {max_wait} seconds")
        return False

    def detect_backend(self) -> str:
        """Pick a backend for the current platform and desktop."""
        if sys.platform == 'win32':
            return 'windows'
        if sys.platform == 'darwin':
            return 'macos'
        if self.is_running('hyprpaper'):
            return 'hyprpaper'
        if shutil.which('swww') and self.is_running('swww-daemon'):
            return 'swww'
        desktop = os.environ.get('XDG_CURRENT_DESKTOP', '').lower()
        if 'gnome' in desktop or 'unity' in desktop or 'cinnamon' in desktop:
            return 'gnome'
        if shutil.which('feh'):
            return 'feh'
        return 'gnome'

    def resolve_backend(self) -> str:
        if self.backend == 'auto':
            backend = self.detect_backend()
            logger.debug(f"Detected wallpaper backend: {backend}")
            return backend
        return self.backend

    def _set_hyprpaper(self, path: Path) -> bool:
        if not self.wait_for_process('hyprpaper'):
            logger.error("Hyprpaper is not running. Please start hyprpaper first.")
            return False
        # Preload is optional and unsupported in hyprpaper 0.8.x
        self._run_command(['hyprctl', 'hyprpaper', 'preload', str(path)])
        # Format is "monitor,path"
        return self._run_command(['hyprctl', 'hyprpaper', 'wallpaper', f"{self.monitor},{path}"])

    def _set_swww(self, path: Path) -> bool:
        cmd = ['swww', 'img', str(path)]
        if self.monitor:
            cmd += ['--outputs', self.monitor]
        return self._run_command(cmd)

    def _set_gnome(self, path: Path) -> bool:
        uri = path.resolve().as_uri()
        schema = 'org.gnome.desktop.background'
        if 'cinnamon' in os.environ.get('XDG_CURRENT_DESKTOP', '').lower():
            schema = 'org.cinnamon.desktop.background'
        if not self._run_command(['gsettings', 'set', schema, 'picture-uri', uri]):
            return False
        if schema == 'org.gnome.desktop.background':
            # Key only exists on GNOME 42+; failure is not fatal
            self._run_command(['gsettings', 'set', schema, 'picture-uri-dark', uri])
        return True

    def _set_feh(self, path: Path) -> bool:
        return self._run_command(['feh', '--bg-fill', str(path)])

    def _set_macos(self, path: Path) -> bool:
        quoted = str(path).replace('\\', '\\\\').replace('"', '\\"')
        script = f'tell application "System Events" to tell every desktop to set picture to "{quoted}"'
        return self._run_command(['osascript', '-e', script])

    def _set_windows(self, path: Path) -> bool:
        ok = ctypes.windll.user32.SystemParametersInfoW(
            SPI_SETDESKWALLPAPER, 0, str(path), SPIF_UPDATEINIFILE | SPIF_SENDWININICHANGE
        )
        if not ok:
            logger.error(f"SystemParametersInfoW failed for {path}")
        return bool(ok)

    def set_wallpaper(self, path: Path) -> bool:
        """
        Set wallpaper.

        Args:
            path: Path to wallpaper file

        Returns:
            True if successful, False otherwise
        """
        path = Path(path).absolute()
        if not path.exists():
            logger.error(f"Wallpaper file not found: {path}")
            return False

        backend = self.resolve_backend()
        setter = getattr(self, f"_set_{backend}", None)
        if setter is None:
            logger.error(f"Unknown wallpaper backend: {backend}")
            return False

        logger.info(f"Setting wallpaper: {path} (via {backend})")
        success = setter(path)

        if success:
            logger.info(f"Wallpaper changed to: {path.name}")
        else:
            logger.error(f"Failed to set wallpaper: {path.name}")

        return success
