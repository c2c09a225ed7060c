"""Output formatters for collected and resolved graphs."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from cyclonedx.model import ExternalReference, ExternalReferenceType, Property, XsUri
from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component, ComponentScope, ComponentType
from cyclonedx.output.json import JsonV1Dot6
from packageurl import PackageURL

from .engine import ArtifactResult, DependencyResult
from .models import Coordinate, DependencyNode
from .scopes import Scopes

logger = logging.getLogger(__name__)

OPTIONAL_SCOPES = frozenset({Scopes.TEST, Scopes.PROVIDED, Scopes.SYSTEM})


class OutputFormatter:
    """Formatter for various output formats."""

    @staticmethod
    def format_as_tree(root: DependencyNode) -> str:
        """Unicode tree of the graph below ``root``."""
        return root.get_tree_representation() + '\n'

    @staticmethod
    def format_as_maven_tree(root: DependencyNode) -> str:
        """Format like Maven's dependency:tree output."""
        lines = [f"[INFO] {OutputFormatter._maven_label(root)}"]
        for i, child in enumerate(root.children):
            lines.extend(OutputFormatter._format_maven_node(child, "", i == len(root.children) - 1))
        return '\n'.join(lines) + '\n'

    @staticmethod
    def _maven_label(node: DependencyNode) -> str:
        c = node.artifact
        parts = [c.group_id, c.artifact_id, c.extension]
        if c.classifier:
            parts.append(c.classifier)
        parts.append(c.version)
        if node.scope:
            parts.append(node.scope)
        label = ':'.join(parts)
        notes = []
        if node.premanaged_version:
            notes.append(f"version managed from {node.premanaged_version}")
        if node.premanaged_scope:
            notes.append(f"scope managed from {node.premanaged_scope}")
        if node.winner is not None:
            notes.append(f"omitted for conflict with {node.winner.artifact.version}")
        if notes:
            label = f"({label} - {'; '.join(notes)})"
        if node.dependency.optional:
            label += " (optional)"
        return label

    @staticmethod
    def _format_maven_node(node: DependencyNode, prefix: str, is_last: bool) -> List[str]:
        """Format a single node in Maven tree style."""
        connector = "\\- " if is_last else "+- "
        lines = [f"[INFO] {prefix}{connector}{OutputFormatter._maven_label(node)}"]
        child_prefix = prefix + ("   " if is_last else "|  ")
        for i, child in enumerate(node.children):
            lines.extend(OutputFormatter._format_maven_node(child, child_prefix, i == len(node.children) - 1))
        return lines

    @staticmethod
    def format_as_list(artifact_results: Sequence[ArtifactResult]) -> str:
        """One line per artifact result: coordinate and located file."""
        lines = []
        for result in artifact_results:
            location = str(result.file) if result.file is not None else "NOT RESOLVED"
            lines.append(f"{result.artifact} -> {location}")
        return '\n'.join(lines) + '\n'

    @staticmethod
    def build_purl(coordinate: Coordinate) -> PackageURL:
        qualifiers = {}
        if coordinate.extension and coordinate.extension != 'jar':
            qualifiers['type'] = coordinate.extension
        if coordinate.classifier:
            qualifiers['classifier'] = coordinate.classifier
        return PackageURL(
            type='maven',
            namespace=coordinate.group_id,
            name=coordinate.artifact_id,
            version=coordinate.version,
            qualifiers=qualifiers or None,
        )

    @staticmethod
    def _node_to_component(node: DependencyNode, component_type: ComponentType = ComponentType.LIBRARY) -> Component:
        purl = OutputFormatter.build_purl(node.artifact)
        scope = None
        if node.scope:
            optional = node.dependency.optional or node.scope in OPTIONAL_SCOPES
            scope = ComponentScope.OPTIONAL if optional else ComponentScope.REQUIRED
        return Component(
            type=component_type,
            group=node.artifact.group_id,
            name=node.artifact.artifact_id,
            version=node.artifact.version,
            scope=scope,
            purl=purl,
            bom_ref=purl.to_string(),
        )

    @staticmethod
    def format_as_sbom(result: DependencyResult, command_line: Optional[str] = None) -> str:
        """Generate a CycloneDX SBOM (JSON) of a resolved graph."""
        from . import __version__

        bom = Bom()
        bom.serial_number = uuid4()
        bom.metadata.timestamp = datetime.now(timezone.utc).replace(microsecond=0)

        tool_component = Component(
            name="mvntoolbox",
            version=__version__,
            type=ComponentType.APPLICATION,
            bom_ref=f"mvntoolbox@{__version__}",
            external_references=[
                ExternalReference(
                    type=ExternalReferenceType.DOCUMENTATION,
                    url=XsUri("https://maven.apache.org/resolver/"),
                )
            ],
        )
        bom.metadata.tools.components.add(tool_component)

        root_component = OutputFormatter._node_to_component(result.root, ComponentType.APPLICATION)
        bom.metadata.component = root_component

        components: Dict[str, Component] = {root_component.bom_ref.value: root_component}
        edges: Dict[str, List[Component]] = {}

        def visit(node: DependencyNode, parents) -> bool:
            if node.winner is not None:
                return False
            if not parents:
                return True
            component = OutputFormatter._node_to_component(node)
            ref = component.bom_ref.value
            if ref not in components:
                components[ref] = component
                bom.components.add(component)
            parent_ref = OutputFormatter.build_purl(parents[-1].artifact).to_string()
            edges.setdefault(parent_ref, []).append(components[ref])
            return True

        result.root.visit(visit)

        for ref, component in components.items():
            bom.register_dependency(component, edges.get(ref, []))

        logger.info(f"Generated SBOM with {len(components)} components")
        if command_line:
            bom.metadata.properties.add(Property(name="commandLine", value=command_line))
        return JsonV1Dot6(bom).output_as_string(indent=2)
