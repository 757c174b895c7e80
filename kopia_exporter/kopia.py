# Thin wrapper around the kopia command line
import logging
import subprocess

from .errors import InventoryError

logger = logging.getLogger(__name__)

COMMON_FLAGS = ["--no-progress"]


class KopiaCLI:
    def __init__(self, binary="kopia", timeout=None):
        self.binary = binary
        self.timeout = timeout

    def _run(self, args, redact=()):
        cmd = [self.binary, *args]
        shown = " ".join("***" if a in redact else a for a in cmd)
        logger.debug("Running %s", shown)
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise InventoryError(f"{self.binary} not found: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise InventoryError(
                f"{shown} timed out after {self.timeout}s", output=e.output or b""
            ) from e
        except OSError as e:
            raise InventoryError(f"Cannot run {shown}: {e}") from e

        if result.returncode != 0:
            raise InventoryError(
                f"{shown} exited with status {result.returncode}",
                output=result.stdout,
                returncode=result.returncode,
            )
        return result.stdout

    def list_snapshots(self) -> bytes:
        """Return the raw JSON snapshot listing (stdout and stderr combined)."""
        return self._run(["snapshot", "list", "--json", *COMMON_FLAGS])

    def connect(self, server_url, password) -> bytes:
        return self._run(
            [
                "repository", "connect", "server",
                "--url", server_url,
                "--password", password,
                "--no-check-for-updates",
                *COMMON_FLAGS,
            ],
            redact=(password,),
        )
