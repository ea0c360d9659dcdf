"""Base model configuration for all Pydantic models."""

from pydantic import BaseModel, ConfigDict


class FathomBaseModel(BaseModel):
    """Base model with common configuration for all models.

    Configuration:
    - extra="forbid": Reject unexpected fields (strict validation)
    - validate_assignment=True: Validate on attribute assignment
    - str_strip_whitespace=True: Strip whitespace from string fields
    - hide_input_in_errors=True: Validation errors never echo the offending
      value. Tool arguments can carry an ``api_key`` and error text is
      returned to the caller and logged.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        hide_input_in_errors=True,
    )
