import re
from typing import Optional, Union

from utils.logger import get_logger
from .contracts import ContractRef, ContractStateReader
from .custom_errors import UnsupportedPortalVersionError
from .types import ProtocolVersion

log = get_logger(__name__)

# Fault proofs (DisputeGameFactory) ship with OptimismPortal2, version 3.x
FAULT_PROOF_MAJOR_VERSION = 3
LEGACY_MAJOR_VERSION = 2

_SEMVER = re.compile(r"^\s*v?(\d+)\.(\d+)\.(\d+)")


def parse_version(version: str) -> ProtocolVersion:
    """
    Parse the portal's semver string (e.g. ``"3.10.0"``, ``"3.8.0-beta.2"``).
    Pre-release and build suffixes are ignored.
    """
    match = _SEMVER.match(version)

    if not match:
        raise UnsupportedPortalVersionError(f"Unparsable portal version: {version!r}")

    return ProtocolVersion(*(int(part) for part in match.groups()))


def get_portal_version(reader: ContractStateReader, portal: ContractRef) -> ProtocolVersion:
    """
    Read the protocol version of an `OptimismPortal` via `portal.version()`.

    Raises
    ------
    ContractReadError
        If the read reverts or the transport fails.
    UnsupportedPortalVersionError
        If the version predates the v2 portal or cannot be parsed.
    """
    version = parse_version(reader.read(portal, "version"))

    if version.major < LEGACY_MAJOR_VERSION:
        raise UnsupportedPortalVersionError(
            f"Portal version {version} is not supported, expected >= {LEGACY_MAJOR_VERSION}.0.0"
        )

    log.debug("portal_version", portal=portal.address, version=str(version))

    return version


def resolve_portal_version(
    reader: ContractStateReader,
    portal: ContractRef,
    version: Optional[Union[int, ProtocolVersion]] = None,
) -> ProtocolVersion:
    """
    Return the caller-supplied version, reading it from the portal only when
    none is given. A bare major version (``2`` or ``3``) is accepted.
    """
    if version is None:
        return get_portal_version(reader, portal)

    if isinstance(version, ProtocolVersion):
        return version

    if version < LEGACY_MAJOR_VERSION:
        raise UnsupportedPortalVersionError(f"Portal version {version} is not supported")

    return ProtocolVersion(version, 0, 0)


def is_legacy(version: ProtocolVersion) -> bool:
    return version.major < FAULT_PROOF_MAJOR_VERSION
