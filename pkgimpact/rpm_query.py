#!/usr/bin/env python3
"""
RPM package manager queries.

Lists installed packages with their sizes and answers "which installed
packages directly require <name>" using the rpm command line.
"""

import logging
import subprocess
import time

from pkgimpact.errors import DependencyQueryError, PackageQueryError

logger = logging.getLogger(__name__)

LIST_QUERY_FORMAT = "%{NEVRA}\\t%{NAME}\\t%{SIZE}\\n"
NAME_QUERY_FORMAT = "%{NAME}\\n"

# Imported GPG keys show up as installed packages but are not software
DEFAULT_EXCLUDE = ("gpg-pubkey",)


class RpmQuery:
    """
    Queries the local RPM database.

    Every command is bounded by a timeout. Failed reverse dependency queries
    may be retried a bounded number of times; "nothing requires this
    package" is an empty result, never an error.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        retries: int = 0,
        rpm_binary: str = "rpm",
        exclude: tuple[str, ...] = DEFAULT_EXCLUDE,
        retry_delay: float = 0.5,
    ):
        """
        Args:
            timeout: Seconds allowed per rpm invocation
            retries: Extra attempts for a failed reverse dependency query
            rpm_binary: rpm executable to run
            exclude: Package names left out of the installed listing and of
                every dependents answer
            retry_delay: Seconds to wait between attempts
        """
        self.timeout = timeout
        self.retries = retries
        self.rpm_binary = rpm_binary
        self.exclude = frozenset(exclude)
        self.retry_delay = retry_delay

    def _run_command(self, cmd: list[str]) -> tuple[int, str, str]:
        """Execute command and return (returncode, stdout, stderr)"""
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
            return (result.returncode, result.stdout, result.stderr)
        except subprocess.TimeoutExpired:
            return (-1, "", f"Command timed out after {self.timeout}s")
        except FileNotFoundError:
            return (-1, "", f"Command not found: {cmd[0]}")
        except OSError as e:
            return (-1, "", str(e))

    def list_installed_packages(self) -> list[tuple[str, str, int]]:
        """
        Enumerate installed packages.

        Returns:
            (identity, name, size) triples sorted by identity

        Raises:
            PackageQueryError: If rpm fails or prints an unparsable line
        """
        returncode, stdout, stderr = self._run_command(
            [self.rpm_binary, "-qa", "--qf", LIST_QUERY_FORMAT]
        )
        if returncode != 0:
            raise PackageQueryError(
                f"Listing installed packages failed: {stderr.strip() or f'exit status {returncode}'}"
            )

        packages = []
        for line in stdout.splitlines():
            if not line.strip():
                continue
            packages.append(self._parse_package_line(line))

        packages = [pkg for pkg in packages if pkg[1] not in self.exclude]
        packages.sort()
        logger.info(f"Found {len(packages)} installed packages")
        return packages

    def _parse_package_line(self, line: str) -> tuple[str, str, int]:
        parts = line.split("\t")
        if len(parts) != 3 or not parts[0] or not parts[1]:
            raise PackageQueryError(f"Unexpected package listing line: {line!r}")

        identity, name, size = parts
        # rpm prints (none) for packages without a size tag
        if size == "(none)":
            return (identity, name, 0)
        if not size.isdigit():
            raise PackageQueryError(f"Invalid size for {identity}: {size!r}")
        return (identity, name, int(size))

    def direct_dependents(self, name: str) -> set[str]:
        """
        Names of installed packages that directly require `name`.

        Raises:
            DependencyQueryError: If the query fails or times out after all
                retries
        """
        for attempt in range(1, self.retries + 1):
            try:
                return self._query_whatrequires(name)
            except DependencyQueryError as e:
                logger.debug(f"Retrying query for {name} ({attempt}/{self.retries}): {e.reason}")
                time.sleep(self.retry_delay)

        return self._query_whatrequires(name)

    def _query_whatrequires(self, name: str) -> set[str]:
        returncode, stdout, stderr = self._run_command(
            [self.rpm_binary, "-q", "--whatrequires", name, "--qf", NAME_QUERY_FORMAT]
        )

        if returncode == 0:
            names = {line.strip() for line in stdout.splitlines() if line.strip()}
            # Excluded packages are not in the listing, so they cannot be dependents either
            return names - self.exclude

        if returncode == 1 and self._is_no_requirers_report(name, stdout, stderr):
            return set()

        reason = stderr.strip() or stdout.strip() or f"exit status {returncode}"
        raise DependencyQueryError(name, reason)

    def _is_no_requirers_report(self, name: str, stdout: str, stderr: str) -> bool:
        """rpm exits 1 with a single report line when nothing requires the package"""
        lines = [line.strip() for line in stdout.splitlines() if line.strip()]
        return not stderr.strip() and lines == [f"no package requires {name}"]
