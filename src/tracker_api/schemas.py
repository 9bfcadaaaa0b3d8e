####################################
# --- Request/response schemas --- #
####################################

from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


class LearningItem(BaseModel):
    """A tracked learning item as returned by `GET /items`."""
    id: int
    title: str
    description: str
    status: str = Field(description="todo, progress, completed, or any other stored value.")
    resolved: bool
    order_index: int = Field(description="Position within the ordered list.")
    created_at: str = Field(description="ISO-8601 creation timestamp.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "Learn asyncio",
                "description": "Event loops, tasks and cancellation",
                "status": "progress",
                "resolved": False,
                "order_index": 0,
                "created_at": "2024-01-01T00:00:00.000000+00:00",
            }
        }
    )


class CreateItemRequest(BaseModel):
    """Request body for `POST /items`. Blank fields are rejected by the store."""
    title: Optional[str] = None
    description: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    """Request body for `POST /items/{item_id}/status`."""
    status: str


class PositionUpdateRequest(BaseModel):
    """Request body for `POST /items/{item_id}/position`."""
    position: int


class ReorderRequest(BaseModel):
    """Request body for `POST /items/reorder`."""
    dragged_id: int = Field(alias="draggedId")
    target_id: int = Field(alias="targetId")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"draggedId": 3, "targetId": 1}},
    )


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    """Response model for `GET /health`."""
    status: str
    timestamp: str
    hostname: str
    version: str
    mode: str
    databaseType: str
    apiBaseUrl: str
