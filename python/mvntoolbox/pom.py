"""Reading artifact descriptors out of POM files.

Builds a simplified effective model: the parent chain is inherited,
``${property}`` references are interpolated, ``import`` scoped BOMs are
expanded into dependency management, and managed versions and scopes are
injected into dependencies that omit them.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .engine import ArtifactDescriptor
from .models import Coordinate, Dependency, Exclusion

logger = logging.getLogger(__name__)

# Packaging types that do not map 1:1 to a file extension
TYPE_HANDLERS: Dict[str, Tuple[str, str]] = {
    'test-jar': ('jar', 'tests'),
    'maven-plugin': ('jar', ''),
    'ejb': ('jar', ''),
    'ejb-client': ('jar', 'client'),
    'java-source': ('jar', 'sources'),
    'javadoc': ('jar', 'javadoc'),
    'bundle': ('jar', ''),
}

MAX_PARENT_DEPTH = 32


class PomError(ValueError):
    """A POM could not be parsed or its parent chain could not be read."""


def _local_name(tag: str) -> str:
    return tag.split('}')[-1] if '}' in tag else tag


def find_child(parent: Optional[ET.Element], tag_name: str) -> Optional[ET.Element]:
    """Direct child by local name, with or without the POM namespace."""
    if parent is None:
        return None
    for child in parent:
        if isinstance(child.tag, str) and _local_name(child.tag) == tag_name:
            return child
    return None


def find_children(parent: Optional[ET.Element], tag_name: str) -> List[ET.Element]:
    if parent is None:
        return []
    return [c for c in parent if isinstance(c.tag, str) and _local_name(c.tag) == tag_name]


def get_element_text(parent: Optional[ET.Element], tag_name: str) -> Optional[str]:
    """Get text content of a child element."""
    elem = find_child(parent, tag_name)
    if elem is not None and elem.text:
        return elem.text.strip()
    return None


def resolve_property(value: Optional[str], properties: Dict[str, str], max_iterations: int = 10) -> Optional[str]:
    """
    Resolve ${property} references in a string with nesting support.
    Returns None if unresolvable.
    """
    if not value or '${' not in value:
        return value

    resolved = value
    iterations = 0

    while '${' in resolved and iterations < max_iterations:
        start_idx = resolved.find('${')
        end_idx = resolved.find('}', start_idx)

        if start_idx == -1 or end_idx == -1:
            break

        prop_name = resolved[start_idx + 2:end_idx]
        prop_value = properties.get(prop_name)

        if prop_value is None:
            return None

        resolved = resolved[:start_idx] + prop_value + resolved[end_idx + 1:]
        iterations += 1

    if '${' in resolved:
        return None

    return resolved


def parse_properties(root: ET.Element) -> Dict[str, str]:
    """Parse all properties from <properties> section."""
    properties = {}
    props_elem = find_child(root, 'properties')
    if props_elem is not None:
        for prop in props_elem:
            if not isinstance(prop.tag, str):
                continue
            properties[_local_name(prop.tag)] = (prop.text or "").strip()
    return properties


@dataclass
class _RawDependency:
    """Dependency element with values not yet interpolated."""

    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]
    type: Optional[str]
    classifier: Optional[str]
    scope: Optional[str]
    optional: Optional[str]
    exclusions: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.type or 'jar'}:{self.classifier or ''}"

    @classmethod
    def from_element(cls, elem: ET.Element) -> '_RawDependency':
        exclusions = []
        for exclusion in find_children(find_child(elem, 'exclusions'), 'exclusion'):
            ex_group = get_element_text(exclusion, 'groupId')
            ex_artifact = get_element_text(exclusion, 'artifactId')
            if ex_group and ex_artifact:
                exclusions.append((ex_group, ex_artifact))
        return cls(
            group_id=get_element_text(elem, 'groupId'),
            artifact_id=get_element_text(elem, 'artifactId'),
            version=get_element_text(elem, 'version'),
            type=get_element_text(elem, 'type'),
            classifier=get_element_text(elem, 'classifier'),
            scope=get_element_text(elem, 'scope'),
            optional=get_element_text(elem, 'optional'),
            exclusions=exclusions,
        )


@dataclass
class _Model:
    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]
    properties: Dict[str, str]
    dependencies: List[_RawDependency]
    managed: List[_RawDependency]


class PomReader:
    """
    Builds artifact descriptors from POM content.

    Args:
        fetch_pom: Returns the raw POM bytes for a coordinate; raises when the
            POM cannot be obtained
    """

    def __init__(self, fetch_pom: Callable[[Coordinate], bytes]):
        self.fetch_pom = fetch_pom

    def read(self, coordinate: Coordinate) -> ArtifactDescriptor:
        return self._read(coordinate, ())

    def _read(self, coordinate: Coordinate, chain: Tuple[str, ...]) -> ArtifactDescriptor:
        model = self._load_model(coordinate, chain)
        properties = self._model_properties(model)

        # imported BOMs only fill in what declared and inherited management leaves open
        declared = [raw for raw in model.managed if not self._is_import(raw, properties)]
        imports = [raw for raw in model.managed if self._is_import(raw, properties)]

        managed: List[Dependency] = []
        managed_keys = set()
        for raw in declared + imports:
            if self._is_import(raw, properties):
                bom = self._to_coordinate(raw, properties)
                if bom is None:
                    continue
                importing = chain + (coordinate.versionless_id,)
                if bom.versionless_id in importing:
                    logger.warning(f"Skipping cyclic BOM import {bom} in {coordinate}")
                    continue
                logger.debug(f"Importing BOM {bom} into {coordinate}")
                imported = self._read(bom, importing)
                candidates = imported.managed_dependencies
            else:
                dependency = self._to_dependency(raw, properties, default_scope='')
                candidates = (dependency,) if dependency is not None else ()
            for dependency in candidates:
                key = dependency.coordinate.versionless_id
                if key not in managed_keys:
                    managed_keys.add(key)
                    managed.append(dependency)

        managed_by_key = {d.coordinate.versionless_id: d for d in managed}
        dependencies: List[Dependency] = []
        for raw in model.dependencies:
            dependency = self._to_dependency(raw, properties, default_scope='', managed=managed_by_key)
            if dependency is None:
                continue
            if not dependency.scope:
                dependency = dependency.with_scope('compile')
            dependencies.append(dependency)

        logger.debug(
            f"Descriptor of {coordinate}: {len(dependencies)} dependencies, "
            f"{len(managed)} managed dependencies"
        )
        return ArtifactDescriptor(
            artifact=coordinate,
            dependencies=tuple(dependencies),
            managed_dependencies=tuple(managed),
        )

    def _load_model(self, coordinate: Coordinate, chain: Tuple[str, ...], depth: int = 0) -> _Model:
        if depth > MAX_PARENT_DEPTH:
            raise PomError(f"Parent chain of {coordinate} is too deep")
        content = self.fetch_pom(coordinate)
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise PomError(f"Invalid POM for {coordinate}: {e}") from e

        parent_elem = find_child(root, 'parent')
        parent: Optional[_Model] = None
        if parent_elem is not None:
            parent_group = get_element_text(parent_elem, 'groupId')
            parent_artifact = get_element_text(parent_elem, 'artifactId')
            parent_version = get_element_text(parent_elem, 'version')
            if not (parent_group and parent_artifact and parent_version):
                raise PomError(f"Incomplete parent declaration in POM of {coordinate}")
            parent_coordinate = Coordinate(parent_group, parent_artifact, parent_version, extension='pom')
            parent = self._load_model(parent_coordinate, chain, depth + 1)

        properties = dict(parent.properties) if parent else {}
        properties.update(parse_properties(root))

        dependencies = [
            _RawDependency.from_element(e)
            for e in find_children(find_child(root, 'dependencies'), 'dependency')
        ]
        managed = [
            _RawDependency.from_element(e)
            for e in find_children(find_child(find_child(root, 'dependencyManagement'), 'dependencies'), 'dependency')
        ]

        if parent is not None:
            own_keys = {d.key for d in dependencies}
            dependencies = [d for d in parent.dependencies if d.key not in own_keys] + dependencies
            # own management first so that it dominates the inherited one
            managed = managed + parent.managed

        return _Model(
            group_id=get_element_text(root, 'groupId') or (parent.group_id if parent else None),
            artifact_id=get_element_text(root, 'artifactId'),
            version=get_element_text(root, 'version') or (parent.version if parent else None),
            properties=properties,
            dependencies=dependencies,
            managed=managed,
        )

    @staticmethod
    def _is_import(raw: _RawDependency, properties: Dict[str, str]) -> bool:
        return resolve_property(raw.scope, properties) == 'import' and (raw.type or 'jar') == 'pom'

    @staticmethod
    def _model_properties(model: _Model) -> Dict[str, str]:
        properties = dict(model.properties)
        for prefix in ('project', 'pom'):
            if model.group_id:
                properties[f'{prefix}.groupId'] = model.group_id
            if model.artifact_id:
                properties[f'{prefix}.artifactId'] = model.artifact_id
            if model.version:
                properties[f'{prefix}.version'] = model.version
        if model.version:
            properties.setdefault('version', model.version)
        return properties

    @staticmethod
    def _to_coordinate(raw: _RawDependency, properties: Dict[str, str], version: Optional[str] = None) -> Optional[Coordinate]:
        group_id = resolve_property(raw.group_id, properties)
        artifact_id = resolve_property(raw.artifact_id, properties)
        version = version if version is not None else resolve_property(raw.version, properties)
        if not (group_id and artifact_id and version):
            logger.debug(f"Could not resolve coordinates {raw.group_id}:{raw.artifact_id}:{raw.version}")
            return None
        dep_type = resolve_property(raw.type, properties) or 'jar'
        extension, classifier = TYPE_HANDLERS.get(dep_type, (dep_type, ''))
        classifier = resolve_property(raw.classifier, properties) or classifier
        return Coordinate(group_id, artifact_id, version, classifier=classifier or '', extension=extension)

    def _to_dependency(
        self,
        raw: _RawDependency,
        properties: Dict[str, str],
        default_scope: str,
        managed: Optional[Dict[str, Dependency]] = None,
    ) -> Optional[Dependency]:
        version = resolve_property(raw.version, properties)
        scope = resolve_property(raw.scope, properties)
        managed_dependency = None
        if managed:
            probe = self._to_coordinate(raw, properties, version=version or '0')
            if probe is not None:
                managed_dependency = managed.get(probe.versionless_id)
        if not version and managed_dependency is not None:
            version = managed_dependency.coordinate.version
        if not scope and managed_dependency is not None:
            scope = managed_dependency.scope
        exclusions = [Exclusion(g, a) for g, a in raw.exclusions]
        if managed_dependency is not None and not exclusions:
            exclusions = list(managed_dependency.exclusions)

        coordinate = self._to_coordinate(raw, properties, version=version)
        if coordinate is None:
            return None
        optional = (resolve_property(raw.optional, properties) or 'false').lower() == 'true'
        return Dependency(coordinate, scope or default_scope, optional, tuple(exclusions))
