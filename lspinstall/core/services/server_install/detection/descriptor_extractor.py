"""
L3 Detection — Client descriptor extraction.

Finds the registration of one client inside its configuration module and
returns the parsed descriptor, the enclosing ``defgroup`` and the file's
top-level bindings.  Every lookup is best-effort: whatever cannot be
found comes back as ``None``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from lspinstall.core.services.server_install.detection.library_index import LibraryIndex
from lspinstall.core.services.server_install.domain.bindings import (
    FileBindings,
    collect_bindings,
)
from lspinstall.core.services.server_install.domain.descriptor import (
    ClientDescriptor,
    ConfigGroup,
    iter_registrations,
    parse_defgroup,
    parse_descriptor,
    registration_server_id,
)
from lspinstall.core.services.server_install.domain.sexp import (
    form_at,
    iter_toplevel,
    read_form,
)
from lspinstall.core.services.server_install.errors import SexpSyntaxError

logger = logging.getLogger(__name__)

_DEFGROUP_RE = re.compile(r"^\(defgroup\s+([^\s()]+)", re.MULTILINE)


@dataclass(frozen=True)
class Extraction:
    """What we learned about one client from its module."""
    server_id: str
    path: Path | None = None
    descriptor: ClientDescriptor | None = None
    group: ConfigGroup | None = None
    bindings: FileBindings = field(default_factory=FileBindings)


def server_id_marker(server_id: str) -> re.Pattern[str]:
    return re.compile(r":server-id\s+'" + re.escape(server_id) + r"(?=[\s)]|$)")


def extract_descriptor(
    server_id: str,
    index: LibraryIndex,
    fallback: Path | None = None,
) -> Extraction:
    """Locate and parse the registration of ``server_id``.

    Args:
        server_id: Client id as written after ``:server-id '``.
        index: Library index; built here on first use.
        fallback: Module to search when the id is not indexed.
    """
    path = index.get(server_id)
    if path is None:
        logger.debug("%s not indexed, trying fallback %s", server_id, fallback)
        path = fallback
    if path is None or not path.is_file():
        return Extraction(server_id=server_id, path=path)

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return Extraction(server_id=server_id, path=path)

    return extract_from_text(server_id, text, path)


def extract_from_text(server_id: str, text: str, path: Path | None = None) -> Extraction:
    """Extraction over already-loaded module text."""
    forms = list(iter_toplevel(text))
    bindings = collect_bindings(forms)

    match = server_id_marker(server_id).search(text)
    if match is None:
        logger.debug("No registration for %s in %s", server_id, path)
        return Extraction(server_id=server_id, path=path, bindings=bindings)

    descriptor = None
    anchor = match.start()
    form = form_at(forms, anchor)
    if form is not None:
        anchor = form.start
        for registration in iter_registrations(form.value):
            if registration_server_id(registration) == server_id:
                descriptor = parse_descriptor(registration)
                break
    if descriptor is None:
        logger.debug("Registration of %s in %s has no usable :new-connection", server_id, path)

    return Extraction(
        server_id=server_id,
        path=path,
        descriptor=descriptor,
        group=find_enclosing_group(text, anchor),
        bindings=bindings,
    )


def find_enclosing_group(text: str, offset: int) -> ConfigGroup | None:
    """Nearest ``defgroup`` that starts before ``offset``."""
    last = None
    for m in _DEFGROUP_RE.finditer(text, 0, offset):
        last = m
    if last is None:
        return None

    try:
        value, _end = read_form(text, last.start())
    except SexpSyntaxError as e:
        logger.debug("Unreadable defgroup %s: %s", last.group(1), e)
        return ConfigGroup(name=last.group(1))
    return parse_defgroup(value) or ConfigGroup(name=last.group(1))

