"""
Schema conversion between the editor tree and the root/items form.

Also builds the structured-output JSON Schema and the system prompt used
for LLM extraction from the root/items form.
"""

import logging
from typing import Any

from ..models import ApiFieldSpec, ApiSchema, SchemaField, SchemaFieldType

logger = logging.getLogger(__name__)

ITEMS_FIELD = "items"
DEFAULT_ITEMS_DESCRIPTION = "list of items purchased"
EXTRACTION_SCHEMA_NAME = "invoice_extraction"


class SchemaError(Exception):
    """Raised when a schema cannot be used for extraction."""

    pass


DEFAULT_SCHEMA: list[SchemaField] = [
    SchemaField(id="1", name="company", type=SchemaFieldType.FIELD, description="name of company"),
    SchemaField(id="2", name="address", type=SchemaFieldType.FIELD, description="address of company"),
    SchemaField(
        id="3",
        name="total_sum",
        type=SchemaFieldType.FIELD,
        description="total amount we purchased",
    ),
    SchemaField(
        id="4",
        name=ITEMS_FIELD,
        type=SchemaFieldType.GROUP,
        description="list of items purchased",
        fields=[
            SchemaField(id="4.1", name="item", description="name of item"),
            SchemaField(id="4.2", name="unit_price", description="unit price of item"),
            SchemaField(id="4.3", name="quantity", description="quantity we purchased"),
            SchemaField(id="4.4", name="sum", description="total amount we purchased"),
        ],
    ),
]


def default_schema() -> list[SchemaField]:
    """Return a fresh copy of the default invoice schema tree."""
    return [field.model_copy(deep=True) for field in DEFAULT_SCHEMA]


def validate_schema_tree(tree: list[SchemaField]) -> None:
    """
    Check that a tree fits the root/items shape.

    Raises:
        SchemaError: If there is a group other than a single ``items`` group,
            a nested group, a root field named ``items``, or a duplicate name.
    """
    root_names: set[str] = set()
    groups = 0

    for field in tree:
        if field.name in root_names:
            raise SchemaError(f"Duplicate field name: {field.name}")
        root_names.add(field.name)

        if field.type == SchemaFieldType.GROUP:
            if field.name != ITEMS_FIELD:
                raise SchemaError(
                    f"Only a group named '{ITEMS_FIELD}' is supported, got '{field.name}'"
                )
            groups += 1
            item_names: set[str] = set()
            for child in field.fields or []:
                if child.type == SchemaFieldType.GROUP:
                    raise SchemaError(f"Nested group '{child.name}' is not supported")
                if child.name in item_names:
                    raise SchemaError(f"Duplicate item field name: {child.name}")
                item_names.add(child.name)
        elif field.name == ITEMS_FIELD:
            raise SchemaError(f"'{ITEMS_FIELD}' is reserved for the repeated items group")

    if groups > 1:
        raise SchemaError(f"Only one '{ITEMS_FIELD}' group is allowed")


def component_to_api_schema(tree: list[SchemaField]) -> ApiSchema:
    """
    Convert the editor tree to the root/items form.

    Args:
        tree: Schema tree. Leaves become root fields, the children of the
            ``items`` group become item fields.

    Returns:
        ApiSchema with both mappings in declaration order. ``items`` is
        ``None`` when the tree has no items group.

    Raises:
        SchemaError: If the tree does not fit the root/items shape.
    """
    validate_schema_tree(tree)

    root: dict[str, ApiFieldSpec] = {}
    items: dict[str, ApiFieldSpec] | None = None
    items_description = DEFAULT_ITEMS_DESCRIPTION

    for field in tree:
        if field.type == SchemaFieldType.GROUP:
            items = {
                child.name: ApiFieldSpec(type="string", description=child.description)
                for child in field.fields or []
            }
            items_description = field.description
        else:
            root[field.name] = ApiFieldSpec(type="string", description=field.description)

    return ApiSchema(root=root, items=items, items_description=items_description)


def api_to_component_schema(api_schema: ApiSchema | None) -> list[SchemaField]:
    """
    Convert the root/items form back to an editor tree.

    Ids are regenerated: root fields get "1".."n", the items group gets the
    next number and its children "<group>.<k>".

    Args:
        api_schema: Schema to convert. ``None`` yields the default schema.

    Returns:
        List of schema fields.
    """
    if api_schema is None:
        return default_schema()

    tree: list[SchemaField] = []
    next_id = 1

    for name, spec in (api_schema.root or {}).items():
        if name == ITEMS_FIELD:
            continue
        tree.append(
            SchemaField(
                id=str(next_id),
                name=name,
                type=SchemaFieldType.FIELD,
                description=spec.description,
            )
        )
        next_id += 1

    item_specs = api_schema.items or {}
    if item_specs:
        group_id = str(next_id)
        children = [
            SchemaField(
                id=f"{group_id}.{index}",
                name=name,
                type=SchemaFieldType.FIELD,
                description=spec.description,
            )
            for index, (name, spec) in enumerate(item_specs.items(), start=1)
        ]
        tree.append(
            SchemaField(
                id=group_id,
                name=ITEMS_FIELD,
                type=SchemaFieldType.GROUP,
                description=api_schema.items_description,
                fields=children,
            )
        )

    return tree


def has_fields(api_schema: ApiSchema | None) -> bool:
    """Return True if the schema declares a root or items mapping with any field."""
    if api_schema is None:
        return False
    return bool(api_schema.root) or bool(api_schema.items)


def root_field_names(api_schema: ApiSchema) -> list[str]:
    """Root field names in declaration order (``items`` excluded)."""
    return [name for name in (api_schema.root or {}) if name != ITEMS_FIELD]


def item_field_names(api_schema: ApiSchema) -> list[str]:
    """Item field names in declaration order."""
    return list(api_schema.items or {})


def build_extraction_json_schema(api_schema: ApiSchema) -> dict[str, Any]:
    """
    Build the JSON Schema used as the LLM's structured output format.

    Every declared field is a described string. Strict structured outputs
    require all properties to be listed as required and no additional
    properties, at every object level.

    Args:
        api_schema: Schema to describe.

    Returns:
        A ``json_schema`` response-format payload: ``{"name", "strict", "schema"}``.
    """
    item_properties = {
        name: {"type": "string", "description": spec.description}
        for name, spec in (api_schema.items or {}).items()
    }
    item_object = {
        "type": "object",
        "properties": item_properties,
        "required": list(item_properties),
        "additionalProperties": False,
    }

    properties: dict[str, Any] = {
        name: {"type": "string", "description": api_schema.root[name].description}
        for name in root_field_names(api_schema)
    }
    properties[ITEMS_FIELD] = {
        "type": "array",
        "description": api_schema.items_description,
        "items": item_object,
    }

    return {
        "name": EXTRACTION_SCHEMA_NAME,
        "strict": True,
        "schema": {
            "type": "object",
            "properties": properties,
            "required": list(properties),
            "additionalProperties": False,
        },
    }


def build_system_prompt(api_schema: ApiSchema) -> str:
    """Build the extraction instructions naming every field to extract."""
    root_fields = ", ".join(root_field_names(api_schema))
    item_fields = ", ".join(item_field_names(api_schema))

    return f"""You are an expert at extracting structured data from invoices and bank statements. Extract all available information following the provided schema exactly.

Schema fields to extract:
Root fields: {root_fields}
Item fields: {item_fields}

Important: Only extract the fields specified above. Do not add any additional fields."""
