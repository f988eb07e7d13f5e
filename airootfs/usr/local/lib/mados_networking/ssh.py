"""madOS Networking - SSH service and GitHub key helpers.

sshd is started and stopped through systemctl.  Public keys are fetched
from ``https://github.com/<user>.keys`` and kept in a marked block of
``~/.ssh/authorized_keys``; lines outside that block are never touched.
"""

import logging
import os
import re
import subprocess
import urllib.error
import urllib.parse
import urllib.request
from typing import List, Optional

from .config import (
    AUTHORIZED_KEYS_FILE,
    GITHUB_KEYS_URL,
    HTTP_TIMEOUT,
    SSH_SERVICE,
    USER_AGENT,
)

log = logging.getLogger(__name__)

# Failure reasons; each is also a translation key
SSH_USER_NOT_FOUND = 'ssh_user_not_found'
SSH_NO_KEYS = 'ssh_no_keys'
SSH_FETCH_FAILED = 'ssh_fetch_failed'
SSH_WRITE_FAILED = 'ssh_write_failed'

BLOCK_BEGIN = '# BEGIN mados-networking github:'
BLOCK_END = '# END mados-networking'

_GITHUB_USERNAME = re.compile(r'^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$')


class SshKeysError(Exception):
    """Raised when GitHub keys cannot be fetched or installed."""

    def __init__(self, reason: str, detail: str = ''):
        super().__init__(detail or reason)
        self.reason = reason


# ---------------------------------------------------------------------------
# sshd service
# ---------------------------------------------------------------------------

def is_sshd_active() -> bool:
    """Return True if the SSH daemon is running."""
    try:
        result = subprocess.run(
            ['systemctl', 'is-active', '--quiet', SSH_SERVICE],
            capture_output=True, text=True, timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def set_sshd_enabled(enabled: bool) -> bool:
    """Enable and start, or disable and stop, the SSH daemon."""
    action = 'enable' if enabled else 'disable'
    try:
        result = subprocess.run(
            ['sudo', 'systemctl', action, '--now', SSH_SERVICE],
            capture_output=True, text=True, timeout=20,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.warning("Could not %s %s: %s", action, SSH_SERVICE, e)
        return False
    if result.returncode != 0:
        log.warning("systemctl %s %s failed: %s", action, SSH_SERVICE, result.stderr.strip())
        return False
    return True


# ---------------------------------------------------------------------------
# GitHub keys
# ---------------------------------------------------------------------------

def fetch_github_keys(username: str) -> List[str]:
    """Download the public keys a GitHub user has published.

    Raises:
        SshKeysError: If the user does not exist, has no keys, or the
            request fails.
    """
    if not _GITHUB_USERNAME.match(username):
        raise SshKeysError(SSH_USER_NOT_FOUND, f'invalid GitHub username {username!r}')

    url = GITHUB_KEYS_URL.format(user=urllib.parse.quote(username))
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=HTTP_TIMEOUT) as resp:
            body = resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as e:
        if e.code == 404:
            raise SshKeysError(SSH_USER_NOT_FOUND, f'{username} not found') from e
        raise SshKeysError(SSH_FETCH_FAILED, str(e)) from e
    except (urllib.error.URLError, OSError) as e:
        raise SshKeysError(SSH_FETCH_FAILED, str(e)) from e

    keys = [line.strip() for line in body.splitlines() if line.strip()]
    if not keys:
        raise SshKeysError(SSH_NO_KEYS, f'{username} has no keys')
    return keys


# ---------------------------------------------------------------------------
# authorized_keys
# ---------------------------------------------------------------------------

def _read_lines(path: str) -> List[str]:
    if not os.path.isfile(path):
        return []
    with open(path, "r") as f:
        return f.read().splitlines()


def _without_block(lines: List[str]) -> List[str]:
    kept = []
    in_block = False
    for line in lines:
        if line.startswith(BLOCK_BEGIN):
            in_block = True
        elif in_block and line.startswith(BLOCK_END):
            in_block = False
        elif not in_block:
            kept.append(line)
    return kept


def _write_lines(path: str, lines: List[str]):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, mode=0o700, exist_ok=True)
    with open(path, "w") as f:
        f.write('\n'.join(lines) + '\n' if lines else '')
    os.chmod(path, 0o600)


def read_installed_user(path: Optional[str] = None) -> str:
    """Return the GitHub user whose keys are installed, or ''."""
    try:
        lines = _read_lines(path or AUTHORIZED_KEYS_FILE)
    except OSError as e:
        log.warning("Could not read authorized keys: %s", e)
        return ''
    for line in lines:
        if line.startswith(BLOCK_BEGIN):
            return line[len(BLOCK_BEGIN):].strip()
    return ''


def install_authorized_keys(username: str, keys: List[str], path: Optional[str] = None):
    """Replace the managed block with ``keys`` for ``username``.

    Raises:
        OSError: If the file cannot be written.
    """
    path = path or AUTHORIZED_KEYS_FILE
    lines = _without_block(_read_lines(path))
    lines += [BLOCK_BEGIN + username] + list(keys) + [BLOCK_END]
    _write_lines(path, lines)


def remove_authorized_keys(path: Optional[str] = None):
    """Drop the managed block, leaving other keys in place.

    Raises:
        OSError: If the file cannot be rewritten.
    """
    path = path or AUTHORIZED_KEYS_FILE
    lines = _read_lines(path)
    kept = _without_block(lines)
    if kept != lines:
        _write_lines(path, kept)
