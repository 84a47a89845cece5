"""
Typed aggregation pipelines over the ORM models.

A Pipeline is an ordered list of stages assembled by explicit conditionals in
the service layer:

    Match     filter rows of the base model
    Lookup    derive a value from another table (count, membership, max, or
              the joined row itself)
    Sort      order by a column of the base model or a derived value
    Project   allowlist of fields in the output documents
    Paginate  1-based page/limit slicing with totals

Every stage is validated before anything is executed. The whole pipeline
compiles to a single SELECT (plus a COUNT when paginated).
"""

import math
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any

from sqlalchemy import select, func, exists, inspect
from sqlalchemy.orm import Session, aliased

from core.exceptions import ValidationError
from utils.logger import get_logger, log_database_query

logger = get_logger(__name__)

# Never allowed in any projection, nested or not
FORBIDDEN_FIELDS = frozenset({"hashed_password", "refresh_token_hash"})

MAX_PAGE_LIMIT = 100


class PipelineError(ValueError):
    """A pipeline was assembled incorrectly (a programming error, not client input)."""


class Reduce(str, Enum):
    COUNT = "count"
    EXISTS = "exists"
    FIRST = "first"
    MAX = "max"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _column_names(model) -> set[str]:
    return {column.key for column in inspect(model).column_attrs}


@dataclass(frozen=True)
class Match:
    conditions: tuple

    def validate(self, pipeline: "Pipeline", seen: dict):
        if not self.conditions:
            raise PipelineError("Match stage needs at least one condition")

    def apply(self, stmt, pipeline: "Pipeline"):
        return stmt.where(*self.conditions)


@dataclass(frozen=True)
class Lookup:
    """
    Joins from_ on foreign_field == local_field and reduces the matches into
    one value named as_. where narrows the joined rows (not for FIRST).
    """
    as_: str
    from_: Any
    local_field: Any
    foreign_field: Any
    reduce: Reduce
    where: tuple = ()
    value: Any = None

    def validate(self, pipeline: "Pipeline", seen: dict):
        if self.as_ in seen or self.as_ in _column_names(pipeline.model):
            raise PipelineError(f"Lookup name '{self.as_}' is already in use")
        if self.reduce is Reduce.MAX and self.value is None:
            raise PipelineError(f"Lookup '{self.as_}' reduces with MAX but names no value column")
        if self.reduce is Reduce.FIRST and self.where:
            raise PipelineError(f"Lookup '{self.as_}' cannot filter a FIRST join")

    def apply(self, stmt, pipeline: "Pipeline"):
        on = self.foreign_field == self.local_field

        if self.reduce is Reduce.FIRST:
            target = aliased(self.from_, name=self.as_)
            stmt = stmt.outerjoin(target, getattr(target, self.foreign_field.key) == self.local_field)
            return stmt.add_columns(target)

        if self.reduce is Reduce.EXISTS:
            expression = exists().where(on, *self.where).correlate(pipeline.model)
        elif self.reduce is Reduce.COUNT:
            expression = (
                select(func.count())
                .select_from(self.from_)
                .where(on, *self.where)
                .correlate(pipeline.model)
                .scalar_subquery()
            )
        else:
            expression = (
                select(func.max(self.value))
                .where(on, *self.where)
                .correlate(pipeline.model)
                .scalar_subquery()
            )

        labeled = expression.label(self.as_)
        pipeline._labels[self.as_] = labeled
        return stmt.add_columns(labeled)


@dataclass(frozen=True)
class Sort:
    key: str
    direction: SortDirection = SortDirection.DESC

    def validate(self, pipeline: "Pipeline", seen: dict):
        if self.key in _column_names(pipeline.model):
            return
        lookup = seen.get(self.key)
        if lookup is None or lookup.reduce is Reduce.FIRST:
            raise ValidationError(f"Invalid sort field '{self.key}'")

    def apply(self, stmt, pipeline: "Pipeline"):
        model = pipeline.model
        if self.key in pipeline._labels:
            primary = pipeline._labels[self.key]
        else:
            primary = getattr(model, self.key)

        keys = [primary]
        # Equal sort keys fall back to insertion order
        if self.key != "created_at" and "created_at" in _column_names(model):
            keys.append(model.created_at)
        keys.append(model.id)

        if self.direction is SortDirection.ASC:
            return stmt.order_by(*(key.asc() for key in keys))
        return stmt.order_by(*(key.desc() for key in keys))


@dataclass(frozen=True)
class Project:
    """
    fields: base-model columns or non-FIRST lookup names.
    nested: FIRST lookup name -> columns of the joined row.
    """
    fields: tuple
    nested: dict = field(default_factory=dict)

    def validate(self, pipeline: "Pipeline", seen: dict):
        columns = _column_names(pipeline.model)
        for name in self.fields:
            if name in FORBIDDEN_FIELDS:
                raise PipelineError(f"Field '{name}' may never be projected")
            lookup = seen.get(name)
            if name not in columns and (lookup is None or lookup.reduce is Reduce.FIRST):
                raise PipelineError(f"Unknown projected field '{name}'")

        for name, nested_fields in self.nested.items():
            lookup = seen.get(name)
            if lookup is None or lookup.reduce is not Reduce.FIRST:
                raise PipelineError(f"'{name}' is not a joined lookup")
            target_columns = _column_names(lookup.from_)
            for nested_field in nested_fields:
                if nested_field in FORBIDDEN_FIELDS:
                    raise PipelineError(f"Field '{name}.{nested_field}' may never be projected")
                if nested_field not in target_columns:
                    raise PipelineError(f"Unknown projected field '{name}.{nested_field}'")

    def to_document(self, row, pipeline: "Pipeline") -> dict:
        entity = row[0]
        document = {}
        for name in self.fields:
            if name in pipeline._positions:
                value = row[pipeline._positions[name]]
                reduce = pipeline._lookups[name].reduce
                if reduce is Reduce.EXISTS:
                    value = bool(value)
                elif reduce is Reduce.COUNT:
                    value = int(value or 0)
                document[name] = value
            else:
                document[name] = getattr(entity, name)

        for name, nested_fields in self.nested.items():
            joined = row[pipeline._positions[name]]
            document[name] = None if joined is None else {
                nested_field: getattr(joined, nested_field) for nested_field in nested_fields
            }
        return document


@dataclass(frozen=True)
class Paginate:
    page: int = 1
    limit: int = 10

    def validate(self, pipeline: "Pipeline", seen: dict):
        if self.page < 1:
            raise ValidationError("page must be a positive integer")
        if not 1 <= self.limit <= MAX_PAGE_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")


@dataclass
class Page:
    docs: list
    total_docs: int
    limit: int
    page: int
    total_pages: int
    has_prev_page: bool
    has_next_page: bool
    prev_page: int | None
    next_page: int | None

    @classmethod
    def build(cls, docs: list, total_docs: int, page: int, limit: int) -> "Page":
        total_pages = max(1, math.ceil(total_docs / limit))
        has_prev_page = page > 1
        has_next_page = page < total_pages
        return cls(
            docs=docs,
            total_docs=total_docs,
            limit=limit,
            page=page,
            total_pages=total_pages,
            has_prev_page=has_prev_page,
            has_next_page=has_next_page,
            prev_page=page - 1 if has_prev_page else None,
            next_page=page + 1 if has_next_page else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class Pipeline:
    """
    Usage:
        page = (
            Pipeline(Video)
            .match(Video.is_published.is_(True))
            .lookup("owner", User, Video.owner_id, User.id, Reduce.FIRST)
            .sort("created_at", SortDirection.DESC)
            .project(("id", "title"), nested={"owner": ("id", "username")})
            .paginate(page=1, limit=10)
            .run(db)
        )
    """

    def __init__(self, model):
        self.model = model
        self.stages: list = []
        self._labels: dict = {}
        self._positions: dict = {}
        self._lookups: dict = {}

    def add(self, stage) -> "Pipeline":
        self.stages.append(stage)
        return self

    def match(self, *conditions) -> "Pipeline":
        return self.add(Match(tuple(conditions)))

    def lookup(self, as_, from_, local_field, foreign_field, reduce: Reduce,
               where=(), value=None) -> "Pipeline":
        return self.add(Lookup(as_, from_, local_field, foreign_field, reduce, tuple(where), value))

    def sort(self, key: str, direction: SortDirection = SortDirection.DESC) -> "Pipeline":
        return self.add(Sort(key, direction))

    def project(self, fields, nested: dict | None = None) -> "Pipeline":
        return self.add(Project(tuple(fields), dict(nested or {})))

    def paginate(self, page: int = 1, limit: int = 10) -> "Pipeline":
        return self.add(Paginate(page, limit))

    def validate(self):
        """
        Check stage order and every stage's own constraints:
        exactly one Project, at most one Sort, Paginate only as the last
        stage, lookups before the Sort/Project that use them.
        """
        seen: dict = {}
        projections = [stage for stage in self.stages if isinstance(stage, Project)]
        if len(projections) != 1:
            raise PipelineError("Pipeline needs exactly one Project stage")
        if sum(isinstance(stage, Sort) for stage in self.stages) > 1:
            raise PipelineError("Pipeline accepts at most one Sort stage")

        for position, stage in enumerate(self.stages):
            if isinstance(stage, Paginate) and position != len(self.stages) - 1:
                raise PipelineError("Paginate must be the last stage")
            if isinstance(stage, Lookup) and any(isinstance(s, (Sort, Project)) for s in self.stages[:position]):
                raise PipelineError(f"Lookup '{stage.as_}' must come before Sort and Project")
            stage.validate(self, seen)
            if isinstance(stage, Lookup):
                seen[stage.as_] = stage

    def build(self):
        """Compile every stage except Project/Paginate into one SELECT."""
        self._labels, self._positions, self._lookups = {}, {}, {}
        stmt = select(self.model)
        position = 1
        for stage in self.stages:
            if isinstance(stage, (Project, Paginate)):
                continue
            if isinstance(stage, Lookup):
                self._positions[stage.as_] = position
                self._lookups[stage.as_] = stage
                position += 1
            stmt = stage.apply(stmt, self)
        return stmt

    def count_statement(self):
        conditions = [c for stage in self.stages if isinstance(stage, Match) for c in stage.conditions]
        return select(func.count()).select_from(self.model).where(*conditions)

    def run(self, db: Session):
        """
        Validate, execute and project.

        Returns:
            Page when the pipeline paginates, otherwise a list of documents
        """
        self.validate()
        stmt = self.build()
        projection = next(stage for stage in self.stages if isinstance(stage, Project))
        paginate = self.stages[-1] if isinstance(self.stages[-1], Paginate) else None

        start = time.perf_counter()
        total_docs = None
        if paginate is not None:
            total_docs = db.scalar(self.count_statement())
            stmt = stmt.offset((paginate.page - 1) * paginate.limit).limit(paginate.limit)

        rows = db.execute(stmt).all()
        docs = [projection.to_document(row, self) for row in rows]

        log_database_query(
            logger, "AGGREGATE", self.model.__tablename__,
            (time.perf_counter() - start) * 1000, rows_affected=len(docs)
        )

        if paginate is not None:
            return Page.build(docs, total_docs or 0, paginate.page, paginate.limit)
        return docs
