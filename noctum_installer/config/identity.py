"""Resolve the account the supervised daemon should run as."""

from __future__ import annotations

import getpass
import grp
import os
import pwd
from pathlib import Path

from noctum_installer.config.schema import ServiceIdentity


def current_identity(environ: dict[str, str] | None = None) -> ServiceIdentity:
    """Resolve the invoking user, their primary group and home directory.

    When run under ``sudo`` the original user (``SUDO_USER``) is used, so the
    daemon never ends up running as root by accident.
    """
    env = os.environ if environ is None else environ
    user = env.get("SUDO_USER") or getpass.getuser()
    try:
        entry = pwd.getpwnam(user)
    except KeyError:
        return ServiceIdentity(user=user, group=user, home=Path.home())

    try:
        group = grp.getgrgid(entry.pw_gid).gr_name
    except KeyError:
        group = str(entry.pw_gid)
    return ServiceIdentity(user=user, group=group, home=Path(entry.pw_dir))
