"""
Declarative data model: cubes, measures and dimensions.

A model file is YAML:

    cubes:
      - name: Records
        sql_table: public.records
        measures:
          - {name: count, type: count}
          - {name: totalValue, type: sum, sql: value}
        dimensions:
          - {name: name, type: string, sql: name}
          - {name: timestamp, type: time, sql: '"timestamp"'}

Member SQL comes from the model author and is trusted; query values never
reach SQL text (see compiler).
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from cubeview.errors import ModelError, QueryError

DEFAULT_MODEL_PATH = Path(__file__).with_name("models") / "records.yml"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TABLE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

MeasureType = Literal["count", "sum", "avg", "min", "max", "count_distinct"]
DimensionType = Literal["string", "number", "time", "boolean"]


def _titleize(name: str) -> str:
    # totalValue -> Total Value
    spaced = re.sub(r"(?<=[a-z0-9])([A-Z])", r" \1", name).replace("_", " ")
    return spaced[:1].upper() + spaced[1:]


class _Member(BaseModel):
    name: str
    sql: Optional[str] = None
    title: Optional[str] = None
    shown: bool = True

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"invalid member name {value!r}")
        return value

    @property
    def display_title(self) -> str:
        return self.title or _titleize(self.name)


class Measure(_Member):
    type: MeasureType
    format: Optional[Literal["number", "currency", "percent"]] = None

    @model_validator(mode="after")
    def _sql_required(self) -> "Measure":
        if self.type != "count" and not self.sql:
            raise ValueError(f"measure {self.name!r} of type {self.type} needs sql")
        return self


class Dimension(_Member):
    type: DimensionType
    primary_key: bool = False

    @property
    def expression(self) -> str:
        """Column expression; defaults to the member name."""
        return self.sql or self.name


class Cube(BaseModel):
    name: str
    sql_table: str
    title: Optional[str] = None
    measures: List[Measure] = Field(default_factory=list)
    dimensions: List[Dimension] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"invalid cube name {value!r}")
        return value

    @field_validator("sql_table")
    @classmethod
    def _valid_table(cls, value: str) -> str:
        if not _TABLE.match(value):
            raise ValueError(f"invalid table name {value!r}")
        return value

    @model_validator(mode="after")
    def _unique_members(self) -> "Cube":
        names = [m.name for m in self.measures] + [d.name for d in self.dimensions]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"cube {self.name!r} defines {', '.join(duplicates)} more than once")
        return self

    def member(self, name: str) -> Union[Measure, Dimension, None]:
        for measure in self.measures:
            if measure.name == name:
                return measure
        for dimension in self.dimensions:
            if dimension.name == name:
                return dimension
        return None


class DataModel(BaseModel):
    cubes: List[Cube]

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("cubes")
    @classmethod
    def _unique_cubes(cls, cubes: List[Cube]) -> List[Cube]:
        names = [c.name for c in cubes]
        if len(names) != len(set(names)):
            raise ValueError("cube names must be unique")
        return cubes

    def cube(self, name: str) -> Cube:
        for cube in self.cubes:
            if cube.name == name:
                return cube
        raise QueryError(f"Cube '{name}' not found")

    def resolve(self, member: str) -> Tuple[Cube, Union[Measure, Dimension]]:
        """
        Resolve a `Cube.member` path.

        Raises
        ------
        QueryError
            If the path is malformed or names an unknown cube or member.
        """
        cube_name, sep, member_name = member.partition(".")
        if not sep or not cube_name or not member_name:
            raise QueryError(f"'{member}' is not a Cube.member path")
        cube = self.cube(cube_name)
        found = cube.member(member_name)
        if found is None:
            raise QueryError(f"'{member_name}' not found in cube '{cube_name}'")
        return cube, found

    def measure(self, member: str) -> Tuple[Cube, Measure]:
        cube, found = self.resolve(member)
        if not isinstance(found, Measure):
            raise QueryError(f"'{member}' is a dimension, not a measure")
        return cube, found

    def dimension(self, member: str) -> Tuple[Cube, Dimension]:
        cube, found = self.resolve(member)
        if not isinstance(found, Dimension):
            raise QueryError(f"'{member}' is a measure, not a dimension")
        return cube, found

    def meta(self) -> Dict[str, Any]:
        """JSON-ready description of every visible member, for `/meta`."""
        cubes = []
        for cube in self.cubes:
            title = cube.title or _titleize(cube.name)
            cubes.append(
                {
                    "name": cube.name,
                    "title": title,
                    "measures": [
                        {
                            "name": f"{cube.name}.{m.name}",
                            "title": f"{title} {m.display_title}",
                            "shortTitle": m.display_title,
                            "type": "number",
                            "aggType": m.type,
                            "format": m.format,
                        }
                        for m in cube.measures
                        if m.shown
                    ],
                    "dimensions": [
                        {
                            "name": f"{cube.name}.{d.name}",
                            "title": f"{title} {d.display_title}",
                            "shortTitle": d.display_title,
                            "type": d.type,
                        }
                        for d in cube.dimensions
                        if d.shown
                    ],
                }
            )
        return {"cubes": cubes}


def parse_model(raw: Any, source: str = "<model>") -> DataModel:
    if not isinstance(raw, dict):
        raise ModelError(f"{source}: expected a mapping with a 'cubes' key")
    try:
        return DataModel.model_validate(raw)
    except ValidationError as exc:
        raise ModelError(f"{source}: {exc}") from exc


def load_model(path: Path | str) -> DataModel:
    """
    Read and validate a YAML model file.

    Raises
    ------
    ModelError
        If the file is missing, is not valid YAML, or fails validation.
    """
    model_path = Path(path)
    try:
        text = model_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ModelError(f"cannot read model file {model_path}: {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ModelError(f"{model_path}: invalid YAML: {exc}") from exc
    return parse_model(raw, source=str(model_path))


@lru_cache(maxsize=1)
def default_model() -> DataModel:
    """The built-in Records model."""
    return load_model(DEFAULT_MODEL_PATH)


def get_model(path: Optional[str] = None) -> DataModel:
    """Model from `path` if given, else the built-in one."""
    return load_model(path) if path else default_model()


__all__ = [
    "DEFAULT_MODEL_PATH",
    "Cube",
    "DataModel",
    "Dimension",
    "Measure",
    "default_model",
    "get_model",
    "load_model",
    "parse_model",
]
