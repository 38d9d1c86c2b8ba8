"""
Router for schema conversion endpoints.

Handles:
- Getting the default invoice schema
- Converting the editor tree to the root/items form
- Converting the root/items form back to a tree
"""

import logging

from fastapi import APIRouter, HTTPException, status

from ..models import ApiSchema, SchemaConversionResponse, SchemaField
from ..services.schema_service import (
    SchemaError,
    api_to_component_schema,
    component_to_api_schema,
    default_schema,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schemas", tags=["schemas"])


@router.get("/default", response_model=SchemaConversionResponse)
async def get_default_schema() -> SchemaConversionResponse:
    """Return the default invoice schema in both forms."""
    tree = default_schema()
    return SchemaConversionResponse(tree=tree, api_schema=component_to_api_schema(tree))


@router.post("/to-api", response_model=ApiSchema)
async def tree_to_api(tree: list[SchemaField]) -> ApiSchema:
    """
    Convert an editor tree to the root/items form used for extraction.

    Args:
        tree: Schema fields as edited by the user.

    Returns:
        The root/items schema.
    """
    try:
        return component_to_api_schema(tree)
    except SchemaError as e:
        logger.warning("Rejected schema tree: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.post("/to-tree", response_model=list[SchemaField])
async def api_to_tree(api_schema: ApiSchema | None = None) -> list[SchemaField]:
    """
    Convert the root/items form to an editor tree.

    Without a body the default schema is returned.
    """
    return api_to_component_schema(api_schema)
