"""Flatten request and response schemas into named, typed fields."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from .models import FieldSpec, Response, ResponseShape, SchemaRef


SchemaTable = Mapping[str, SchemaRef]


def schema_name(ref: Optional[str], inline_type: Optional[str]) -> str:
    """Return the schema table key for a reference or an inline type.

    ``#/definitions/Pet`` and ``#/components/schemas/Pet`` both yield ``Pet``.
    Without a reference the inline type is returned unchanged.
    """
    if ref:
        return ref.rsplit("/", 1)[-1]
    return inline_type or ""


def _type_tag(schema_type: Optional[str]) -> Optional[str]:
    if schema_type == "number":
        return "float"
    return schema_type


def property_type(prop: SchemaRef, schema_table: SchemaTable) -> str:
    if prop.ref:
        target = schema_table.get(schema_name(prop.ref, None))
        if target is not None and target.type:
            return _type_tag(target.type) or "object"
        return "object"
    return _type_tag(prop.type) or "string"


def resolve_fields(schema: Optional[SchemaRef], schema_table: SchemaTable) -> Tuple[FieldSpec, ...]:
    """Resolve a body schema to a flat, ordered tuple of fields.

    A ``$ref`` is looked up by its last path segment; otherwise the inline
    type is tried as a table key. For every ``array`` property of the
    resolved schema, the inline schema's property named after the schema
    contributes its ``items.properties`` first. Unknown names resolve to no
    fields.
    """
    if schema is None:
        return ()

    name = schema_name(schema.ref, schema.type)
    definition = schema_table.get(name) if name else None
    fields: Dict[str, str] = {}

    if definition is not None:
        for prop_name, prop in definition.properties.items():
            if prop.type == "array":
                nested = schema.properties.get(name)
                if nested is not None and nested.items is not None:
                    for item_name, item in nested.items.properties.items():
                        fields[item_name] = property_type(item, schema_table)
            fields[prop_name] = property_type(prop, schema_table)
    elif not schema.ref:
        if schema.properties:
            for prop_name, prop in schema.properties.items():
                fields[prop_name] = property_type(prop, schema_table)
        elif schema.type == "array" and schema.items is not None:
            return resolve_fields(schema.items, schema_table)

    return tuple(FieldSpec(name=key, type_tag=value) for key, value in fields.items())


def resolve_response(
    status: str, response: Response, schema_table: SchemaTable
) -> Optional[ResponseShape]:
    schema = response.schema_
    if schema is None:
        schema = next(
            (media.schema_ for media in response.content.values() if media.schema_ is not None),
            None,
        )
    if schema is not None:
        fields = resolve_fields(schema, schema_table)
        if fields:
            return ResponseShape(status=status, fields=fields)
        if schema.type:
            return ResponseShape(status=status, type_tag=schema.type)
    if response.type:
        return ResponseShape(status=status, type_tag=response.type)
    return None
