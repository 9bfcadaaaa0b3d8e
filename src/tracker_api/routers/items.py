import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Request

from database.base import ItemOperations

from tracker_api.schemas import (
    CreateItemRequest,
    ErrorResponse,
    LearningItem,
    PositionUpdateRequest,
    ReorderRequest,
    StatusUpdateRequest,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["items"],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


def get_items(request: Request) -> ItemOperations:
    """Provider of item operations for this process: the local store or the peer."""
    return request.app.state.composition.items


@router.get("/items", response_model=List[LearningItem])
async def list_items(items: ItemOperations = Depends(get_items)):
    """List learning items ordered by status, position and newest first."""
    return await items.list()


@router.post("/items", response_model=SuccessResponse)
async def create_item(body: CreateItemRequest, items: ItemOperations = Depends(get_items)):
    """Add a learning item. Title and description must not be blank."""
    await items.create(body.title, body.description)
    logger.info(f"Added new learning item: {body.title}")
    return SuccessResponse()


@router.post("/items/reorder", response_model=SuccessResponse)
async def reorder_items(body: ReorderRequest, items: ItemOperations = Depends(get_items)):
    """Move the dragged item into the target's slot and renumber all positions."""
    await items.reorder(body.dragged_id, body.target_id)
    logger.info(f"Reordered items: {body.dragged_id} -> {body.target_id}")
    return SuccessResponse()


@router.delete("/items/{item_id}", response_model=SuccessResponse)
async def delete_item(
    item_id: int = Path(..., description="The id of the learning item"),
    items: ItemOperations = Depends(get_items),
):
    """Delete a learning item. Deleting an absent item also succeeds."""
    await items.delete(item_id)
    logger.info(f"Deleted learning item with id: {item_id}")
    return SuccessResponse()


@router.post("/items/{item_id}/status", response_model=SuccessResponse)
async def update_item_status(
    body: StatusUpdateRequest,
    item_id: int = Path(..., description="The id of the learning item"),
    items: ItemOperations = Depends(get_items),
):
    """Set the status; resolved becomes true only for 'completed'."""
    logger.info(f"Received status update request: ID={item_id}, Status={body.status}")
    await items.set_status(item_id, body.status)
    logger.info(f"Updated status of item {item_id} to {body.status}")
    return SuccessResponse()


@router.post("/items/{item_id}/resolve", response_model=SuccessResponse)
async def resolve_item(
    item_id: int = Path(..., description="The id of the learning item"),
    items: ItemOperations = Depends(get_items),
):
    await items.resolve(item_id)
    logger.info(f"Resolved learning item with id: {item_id}")
    return SuccessResponse()


@router.post("/items/{item_id}/unresolve", response_model=SuccessResponse)
async def unresolve_item(
    item_id: int = Path(..., description="The id of the learning item"),
    items: ItemOperations = Depends(get_items),
):
    await items.unresolve(item_id)
    logger.info(f"Unresolved learning item with id: {item_id}")
    return SuccessResponse()


@router.post("/items/{item_id}/position", response_model=SuccessResponse)
async def update_item_position(
    body: PositionUpdateRequest,
    item_id: int = Path(..., description="The id of the learning item"),
    items: ItemOperations = Depends(get_items),
):
    """Overwrite one item's position without renumbering the others."""
    await items.set_position(item_id, body.position)
    logger.info(f"Moved learning item {item_id} to position {body.position}")
    return SuccessResponse()
