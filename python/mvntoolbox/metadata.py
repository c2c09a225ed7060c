"""Reading of repository ``maven-metadata.xml`` files."""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .errors import MetadataParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PluginInfo:
    """A plugin entry of group level metadata."""

    artifact_id: str
    prefix: Optional[str] = None
    name: Optional[str] = None


@dataclass
class RepositoryMetadata:
    """Parsed content of a ``maven-metadata.xml`` (group or artifact level)."""

    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    versions: List[str] = field(default_factory=list)
    latest: Optional[str] = None
    release: Optional[str] = None
    last_updated: Optional[str] = None
    plugins: List[PluginInfo] = field(default_factory=list)


def _local_name(tag: str) -> str:
    return tag.split('}')[-1] if '}' in tag else tag


def _child(parent: ET.Element, name: str) -> Optional[ET.Element]:
    for child in parent:
        if _local_name(child.tag) == name:
            return child
    return None


def _children(parent: Optional[ET.Element], name: str) -> Iterable[ET.Element]:
    if parent is None:
        return []
    return [child for child in parent if _local_name(child.tag) == name]


def _text(parent: Optional[ET.Element], name: str) -> Optional[str]:
    if parent is None:
        return None
    elem = _child(parent, name)
    if elem is not None and elem.text:
        return elem.text.strip()
    return None


def parse_metadata(content: Union[str, bytes]) -> RepositoryMetadata:
    """
    Parse metadata XML content.

    Raises:
        MetadataParseError: If the content is not well formed XML
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise MetadataParseError(f"Invalid repository metadata: {e}") from e

    metadata = RepositoryMetadata(
        group_id=_text(root, 'groupId'),
        artifact_id=_text(root, 'artifactId'),
    )

    versioning = _child(root, 'versioning')
    if versioning is not None:
        metadata.latest = _text(versioning, 'latest')
        metadata.release = _text(versioning, 'release')
        metadata.last_updated = _text(versioning, 'lastUpdated')
        for version_elem in _children(_child(versioning, 'versions'), 'version'):
            if version_elem.text and version_elem.text.strip():
                metadata.versions.append(version_elem.text.strip())

    for plugin_elem in _children(_child(root, 'plugins'), 'plugin'):
        artifact_id = _text(plugin_elem, 'artifactId')
        if not artifact_id:
            continue
        metadata.plugins.append(PluginInfo(
            artifact_id=artifact_id,
            prefix=_text(plugin_elem, 'prefix'),
            name=_text(plugin_elem, 'name'),
        ))

    return metadata


def read_metadata(path: Path) -> RepositoryMetadata:
    """Read and parse a metadata file."""
    logger.debug(f"Reading repository metadata from {path}")
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        raise MetadataParseError(f"Cannot read repository metadata {path}: {e}") from e
    return parse_metadata(content)
