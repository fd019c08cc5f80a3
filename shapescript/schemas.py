"""
Pydantic schemas for the job evaluation API.
"""

from typing import Any

from pydantic import BaseModel, Field

from shapescript.engines.evaluator import EvalResult
from shapescript.geometry import Bounds
from shapescript.models import Parameter


class Message(BaseModel):
    message: str


class EvalRequest(BaseModel):
    """Body for POST /jobs/{job_id}/eval and /jobs/{job_id}/reeval."""

    script: str = Field(..., min_length=1)
    params: dict[str, str] | None = Field(
        default=None,
        description="Parameter name -> JSON-encoded value, e.g. {\"radius\": \"5\"}.",
    )


class BoundsPublic(BaseModel):
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    zmin: float
    zmax: float


class EvalResponse(BaseModel):
    success: bool
    geometry: str | None = Field(default=None, description="Type of the resulting geometry handle.")
    bounds: BoundsPublic | None = None
    log: str | None = None
    error: str | None = None
    params: list[Parameter] | None = None
    elapsed_ms: int = 0

    @classmethod
    def from_result(cls, result: EvalResult, bounds: Bounds) -> "EvalResponse":
        data: dict[str, Any] = {
            "success": result.success,
            "log": result.log,
            "error": result.error,
            "elapsed_ms": result.elapsed_ms,
        }
        if result.success:
            data["geometry"] = type(result.data_source).__name__
            data["bounds"] = BoundsPublic(**bounds.to_dict())
        if result.params is not None:
            data["params"] = list(result.params.values())
        return cls(**data)
