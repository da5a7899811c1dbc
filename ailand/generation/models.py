"""
Request and result types for the two-stage generator.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ActionType(str, Enum):
    """What the caller asked for."""

    GENERATE = "generate"
    IMPROVE = "improve"


class GenerationRequest(BaseModel):
    """
    One landing-page generation or improvement request.

    ``design_plan`` and ``current_content`` only matter for ``improve``: a
    plan with little or no content routes to a render retry, anything else
    to a standard improvement of the current HTML.
    """

    model_config = ConfigDict(frozen=True)

    custom_prompt: str = ""
    action: ActionType = ActionType.GENERATE
    scope: int = Field(default=0, ge=0, description="Store scope")
    data_source_type: str | None = Field(default=None, description="'product', 'category' or None")
    source_id: str | int | None = None
    design_plan: str | None = None
    current_content: str | None = None
    reference_image_url: str | None = None
    generate_interactive: bool = False
    styling_reference_html: str | None = None


class GenerationResult(BaseModel):
    """
    Outcome of a request.

    Stage failures are reported here rather than raised: ``html`` then holds
    a human-readable error and ``design`` whatever plan was available.
    """

    model_config = ConfigDict(frozen=True)

    design: str | None = None
    html: str = ""
