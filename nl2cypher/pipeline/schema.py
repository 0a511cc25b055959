from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

NO_PROPERTIES = "No properties"


class InvalidSchema(ValueError):
    """Schema input is missing its node or relationship sequences."""


@dataclass(frozen=True)
class SchemaProperty:
    name: str
    type: Optional[str] = None


@dataclass(frozen=True)
class NodeType:
    label: str
    properties: Tuple[SchemaProperty, ...] = ()

    def property_names(self) -> List[str]:
        return [p.name for p in self.properties]


@dataclass(frozen=True)
class RelationshipType:
    type: str
    start_label: Optional[str] = None
    end_label: Optional[str] = None
    properties: Tuple[SchemaProperty, ...] = ()

    def property_names(self) -> List[str]:
        return [p.name for p in self.properties]

    def descriptor(self) -> str:
        return f"({self.start_label or ''})-[:{self.type}]->({self.end_label or ''})"


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _properties(raw: Any) -> Tuple[SchemaProperty, ...]:
    if not _is_sequence(raw):
        return ()
    props: List[SchemaProperty] = []
    for item in raw:
        if isinstance(item, SchemaProperty):
            props.append(item)
        elif isinstance(item, Mapping) and item.get("name"):
            props.append(SchemaProperty(name=str(item["name"]), type=item.get("type")))
        elif isinstance(item, str) and item.strip():
            props.append(SchemaProperty(name=item.strip()))
    return tuple(props)


@dataclass(frozen=True)
class SchemaDescription:
    nodes: Tuple[NodeType, ...]
    relationships: Tuple[RelationshipType, ...]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SchemaDescription":
        """
        Build a schema from the introspection document shape:
        ``{"nodes": [{"label", "properties": [{"name"}]}],
        "relationships": [{"type", "startNode", "endNode", "properties"}]}``.

        Plain strings are accepted as node entries (label-only introspection).
        """
        if not isinstance(data, Mapping):
            raise InvalidSchema("schema must be a mapping with 'nodes' and 'relationships'")
        raw_nodes = data.get("nodes")
        raw_rels = data.get("relationships")
        if not _is_sequence(raw_nodes) or not _is_sequence(raw_rels):
            raise InvalidSchema("schema 'nodes' and 'relationships' must both be sequences")

        nodes: List[NodeType] = []
        for item in raw_nodes:
            if isinstance(item, str):
                nodes.append(NodeType(label=item))
            elif isinstance(item, Mapping) and item.get("label"):
                nodes.append(NodeType(label=str(item["label"]), properties=_properties(item.get("properties"))))
            else:
                raise InvalidSchema(f"node entry without a label: {item!r}")

        relationships: List[RelationshipType] = []
        for item in raw_rels:
            if isinstance(item, str):
                relationships.append(RelationshipType(type=item))
            elif isinstance(item, Mapping) and item.get("type"):
                relationships.append(
                    RelationshipType(
                        type=str(item["type"]),
                        start_label=item.get("startNode") or item.get("startLabel"),
                        end_label=item.get("endNode") or item.get("endLabel"),
                        properties=_properties(item.get("properties")),
                    )
                )
            else:
                raise InvalidSchema(f"relationship entry without a type: {item!r}")
        return cls(nodes=tuple(nodes), relationships=tuple(relationships))

    @classmethod
    def from_text(cls, schema_context: str) -> "SchemaDescription":
        """Parse the compact form: ``Person: id, name`` and ``Person-[:KNOWS]->Person`` lines."""
        nodes: Dict[str, List[str]] = {}
        relationships: List[RelationshipType] = []
        for raw in schema_context.splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("- ") or line.startswith("* "):
                line = line[2:].strip()
            rel_match = re.match(
                r"^\(?([A-Za-z0-9_]+)\)?-?\s*\[:([A-Za-z0-9_]+)\]\s*->\s*\(?([A-Za-z0-9_]+)\)?", line
            )
            if rel_match:
                relationships.append(
                    RelationshipType(
                        type=rel_match.group(2),
                        start_label=rel_match.group(1),
                        end_label=rel_match.group(3),
                    )
                )
                continue
            ent_match = re.match(r"^([A-Za-z0-9_]+)\s*:\s*(.*)$", line)
            if ent_match:
                name = ent_match.group(1).strip()
                props = [p.strip() for p in re.split(r"[;,]", ent_match.group(2)) if p.strip()]
                existing = nodes.setdefault(name, [])
                existing.extend(p for p in props if p not in existing)
        return cls(
            nodes=tuple(NodeType(label, tuple(SchemaProperty(p) for p in props)) for label, props in nodes.items()),
            relationships=tuple(relationships),
        )

    def labels(self) -> List[str]:
        return [n.label for n in self.nodes]

    def relationship_types(self) -> List[str]:
        return [r.type for r in self.relationships]

    def has_label(self, label: str) -> bool:
        return any(n.label == label for n in self.nodes)

    def list_properties(self, label: str) -> List[str]:
        for node in self.nodes:
            if node.label == label:
                return node.property_names()
        return []


SchemaInput = Union[SchemaDescription, Mapping[str, Any]]


def coerce_schema(schema: SchemaInput) -> SchemaDescription:
    if isinstance(schema, SchemaDescription):
        return schema
    return SchemaDescription.from_dict(schema)


def parse_schema_text(text: str) -> SchemaDescription:
    """JSON introspection output when it parses as JSON, otherwise the compact text form."""
    try:
        data = json.loads(text)
    except ValueError:
        return SchemaDescription.from_text(text)
    if not isinstance(data, Mapping):
        raise InvalidSchema("JSON schema must be an object with 'nodes' and 'relationships'")
    return SchemaDescription.from_dict(data)


def _joined(names: Iterable[str]) -> str:
    text = ", ".join(names)
    return text or NO_PROPERTIES


def format_schema(schema: SchemaInput) -> str:
    """Render a schema as the text block embedded in the query-generation prompt."""
    description = coerce_schema(schema)
    lines = ["DATABASE SCHEMA DETAILS:", "", "NODE TYPES:"]
    for node in description.nodes:
        lines.append(f"- {node.label}: {_joined(node.property_names())}")
    lines.append("")
    lines.append("RELATIONSHIP TYPES:")
    for rel in description.relationships:
        payload = {
            "type": rel.type,
            "properties": _joined(rel.property_names()),
            "from": rel.start_label,
            "to": rel.end_label,
        }
        lines.append(f"- {json.dumps(payload)}")
    return "\n".join(lines) + "\n"


__all__ = [
    "InvalidSchema",
    "NodeType",
    "RelationshipType",
    "SchemaDescription",
    "SchemaInput",
    "SchemaProperty",
    "coerce_schema",
    "format_schema",
    "parse_schema_text",
]
