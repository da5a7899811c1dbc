"""Context handed to every prompt-assembly step of one generation request."""

from pydantic import BaseModel, ConfigDict, Field


class GenerationContext(BaseModel):
    """
    Store and data-source facts for a request.

    Built once per request and only read afterwards. Empty strings mean
    "nothing to say"; the prompt assembler skips those sections entirely.
    """

    store_context: str = Field(default="", description="Store name, base URL, locale, ...")
    data_source_context: str = Field(
        default="", description="Product or category facts, one 'Key: value' per line"
    )
    data_source_type: str | None = Field(
        default=None, description="'product', 'category' or None; selects the content goal"
    )
    styling_reference_html: str | None = Field(
        default=None, description="Existing page HTML whose look the output should follow"
    )

    model_config = ConfigDict(frozen=True)
