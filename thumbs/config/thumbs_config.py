from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, Field


class ThumbsSection(BaseModel):
    dimensions: list[int] = Field(min_length=1)


class ThumbsFile(BaseModel):
    thumbs: ThumbsSection


def normalize_dimensions(dimensions: list[int]) -> list[int]:
    if not dimensions:
        raise ValueError("at least one thumbnail dimension is required")

    result = []
    for dimension in dimensions:
        if dimension <= 0:
            raise ValueError(f"thumbnail dimension must be positive: {dimension}")
        if dimension not in result:
            result.append(dimension)
    return result


def load_dimensions(path: Union[str, Path]) -> list[int]:
    """Reads the thumbnail dimension list from a YAML config file.

    Expected layout::

        thumbs:
          dimensions: [100, 400]
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"invalid config file {path}: {e}") from e

    parsed = ThumbsFile.model_validate(raw)
    return normalize_dimensions(parsed.thumbs.dimensions)
