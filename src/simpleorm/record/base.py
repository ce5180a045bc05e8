"""
Record base class.

A record type is a subclass of Record bound to one table:

    class Post(Record):
        table = "posts"

        @classmethod
        def output_filters(cls):
            return ["strip_title"]

        def strip_title(self):
            self.set("title", (self.get("title") or "").strip())

    post = Post.create({"title": "Hello", "body": "World!"})
    post.set("title", "Hello again").save()

Configuration is read from class attributes: ``table`` (defaults to the
lowercased class name), ``pk`` (defaults to ``id``), ``database`` (defaults
to the name the connection was configured with) and ``database_handle``
(defaults to the process-wide handle from simpleorm.db).
"""

import logging
from typing import Any, Optional, Sequence

from simpleorm import db
from simpleorm.errors import NotFoundError, StateError, ValidationError
from simpleorm.query import builder, dispatch, gateway
from simpleorm.query.builder import Statement, TableDescriptor
from simpleorm.query.gateway import Cardinality
from simpleorm.record.attributes import AttributeMap
from simpleorm.record.filters import FilterPipeline, HookSpec
from simpleorm.record.loader import LoadStrategy, load, validate_pk
from simpleorm.record.tracking import DirtyTracker

logger = logging.getLogger(__name__)


class RecordMeta(type):
    def __getattr__(cls, name: str):
        # Only reached when normal lookup fails
        return dispatch.resolve(cls, name)


class Record(metaclass=RecordMeta):
    table: Optional[str] = None
    pk: str = "id"
    database: Optional[str] = None
    database_handle: Optional[db.Database] = None

    ignore_key_on_insert = True
    ignore_key_on_update = True
    # Reject set() on fields the table does not have
    strict = False

    _pipeline = FilterPipeline()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._pipeline = FilterPipeline.for_type(cls)
        cls._descriptor_cache = None

    def __init__(self, data=None, strategy: LoadStrategy = LoadStrategy.EMPTY):
        self._attributes = AttributeMap()
        self._tracker = DirtyTracker()
        self._strategy = LoadStrategy(strategy)
        self._load_data = data
        self._new = False
        self._parent = None

        load(self)
        self.initialise()

    # =========================================================================
    # Type Configuration
    # =========================================================================

    @classmethod
    def output_filters(cls) -> Sequence[HookSpec]:
        """Methods run, in order, after data is loaded into a record."""
        return ()

    @classmethod
    def input_filters(cls) -> Sequence[HookSpec]:
        """Methods folded, in order, over the data about to be written."""
        return ()

    @classmethod
    def get_database(cls) -> db.Database:
        return cls.database_handle or db.get_database()

    @classmethod
    def descriptor(cls) -> TableDescriptor:
        handle = cls.get_database()
        cached = cls.__dict__.get("_descriptor_cache")
        if cached is not None and cached[0] is handle:
            return cached[1]

        descriptor = TableDescriptor(
            database=cls.database or handle.name,
            table=cls.table or cls.__name__.lower(),
            pk=cls.pk,
        )
        cls._descriptor_cache = (handle, descriptor)
        return descriptor

    @classmethod
    def columns(cls) -> list[str]:
        """Column names of the bound table, in table order."""
        descriptor = cls.descriptor()
        return cls.get_database().schema.columns(descriptor.database, descriptor.table)

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def retrieve_by_pk(cls, pk):
        """Load a record by primary key, raising NotFoundError if it is missing."""
        return cls(validate_pk(pk), LoadStrategy.BY_PRIMARY_KEY)

    @classmethod
    def hydrate(cls, data):
        """Build a record from a mapping without going to the database."""
        return cls(data, LoadStrategy.BY_ATTRIBUTE_MAP)

    @classmethod
    def create(cls, data):
        """Build a record from a mapping and insert it straight away."""
        return cls(data, LoadStrategy.NEW_FROM_ATTRIBUTES)

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def sql(cls, query: str, cardinality: Cardinality = Cardinality.MANY, params: tuple = None):
        """
        Run raw SQL and hydrate the rows into records of this type.

        ``:database``, ``:table`` and ``:pk`` in the query are replaced with
        the quoted names of this type's table.
        """
        statement = Statement(builder.substitute_placeholders(query, cls.descriptor()), params or ())
        return gateway.fetch_records(cls, statement, cardinality)

    @classmethod
    def count(cls, query: str, params: tuple = None) -> int:
        """Run a counting query and return its first column, or 0."""
        statement = Statement(builder.substitute_placeholders(query, cls.descriptor()), params or ())
        return gateway.coerce_count(gateway.fetch_row(cls.get_database(), statement))

    @classmethod
    def dataframe(cls, query: str, params: tuple = None):
        """Run raw SQL and return the rows as a pandas DataFrame."""
        query = builder.substitute_placeholders(query, cls.descriptor())
        return cls.get_database().fetch_dataframe(query, params)

    @classmethod
    def all(cls) -> list:
        return cls.sql("SELECT * FROM :database.:table")

    @classmethod
    def truncate(cls) -> None:
        """Remove every row from the table. There is no undo."""
        cls.sql("TRUNCATE :database.:table", Cardinality.NONE)

    @classmethod
    def retrieve_by_field(cls, field: str, value: Any, cardinality: Cardinality = Cardinality.MANY):
        """
        Retrieve records by a column value.

        A string value containing ``%`` is matched with LIKE, anything else
        with =. With Cardinality.ONE at most one record (or None) is returned.
        """
        if not isinstance(field, str):
            raise ValidationError("The field name must be a string.")
        if not isinstance(cardinality, Cardinality):
            raise ValidationError(f"Unknown cardinality {cardinality!r}")

        statement = builder.build_select_by_field(
            cls.descriptor(), field, value, limit_one=cardinality is Cardinality.ONE
        )
        return gateway.fetch_records(cls, statement, cardinality)

    retrieveByField = retrieve_by_field

    @classmethod
    def select_options(cls, where: str = None) -> dict:
        """
        Map of primary key to ``str(record)`` for every row, for select boxes.

        ``where`` is raw SQL appended as the WHERE clause.
        """
        query = "SELECT * FROM :database.:table"
        if isinstance(where, str):
            query += f" WHERE {where}"
        return {record.id(): str(record) for record in cls.sql(query)}

    # =========================================================================
    # Hooks
    # =========================================================================

    def initialise(self) -> None:
        """Called once, after the record has been loaded."""

    def pre_insert(self, data: dict) -> None:
        """Called with the record's data just before it is inserted."""

    def post_insert(self) -> None:
        """Called after an insert, once the record has been reloaded."""

    # =========================================================================
    # State
    # =========================================================================

    @property
    def load_strategy(self) -> LoadStrategy:
        return self._strategy

    @property
    def load_data(self):
        """The raw data the record was constructed with."""
        return self._load_data

    def id(self):
        return self._attributes.get(self.descriptor().pk)

    def is_new(self) -> bool:
        """True until the record has been inserted."""
        return self._new

    def is_modified(self) -> Optional[dict[str, Any]]:
        """
        Changes made with set() since the last update, or None.

        A field changed once maps to its new value; a field changed several
        times maps to the list of values in the order they were set.
        """
        return self._tracker.is_modified()

    def get_parent(self):
        return self._parent

    def set_parent(self, parent) -> None:
        """Remember the owning record. It is never saved or deleted with this one."""
        self._parent = parent

    # =========================================================================
    # Field Access
    # =========================================================================

    def get(self, field: str = None):
        """A single field value (None if unset), or a dict of every field."""
        if field is None:
            return self._attributes.as_dict()
        return self._attributes.get(field)

    def set(self, field: str, value: Any) -> "Record":
        """Assign a field and record the change if the value differs."""
        if not isinstance(field, str):
            raise ValidationError("The field name must be a string.")
        if self.strict and not self._tracker.suspended and field not in self.columns():
            raise ValidationError(f'{type(self).__name__} has no column named "{field}".')

        self._tracker.record(field, self._attributes.get(field), value)
        self._attributes[field] = value
        return self

    def __getitem__(self, field: str):
        return self._attributes[field]

    def __setitem__(self, field: str, value: Any) -> None:
        # Raw write, not tracked
        self._attributes[field] = value

    def __contains__(self, field: str) -> bool:
        return field in self._attributes

    def __getattr__(self, name: str):
        attributes = self.__dict__.get("_attributes")
        if name.startswith("_") or attributes is None or name not in attributes:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        return attributes[name]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.pk}={self._attributes.get(self.pk)!r}>"

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self) -> None:
        """Insert the record if it is new, otherwise update it."""
        if self.is_new():
            self._insert()
        else:
            self.update()

    def update(self) -> None:
        if self.is_new():
            raise StateError("Unable to update record, it is new.")

        descriptor = self.descriptor()
        pk_value = self.id()
        data = self._pipeline.run_input(self, self.get())
        statement = builder.build_update(
            descriptor, data, self.columns(), pk_value, ignore_key=self.ignore_key_on_update
        )

        if statement is None:
            logger.debug("Nothing to update for %s %s=%r", descriptor.table, descriptor.pk, pk_value)
        else:
            gateway.execute(self.get_database(), statement)

        self._tracker.clear()

    def delete(self) -> None:
        if self.is_new():
            raise StateError(
                "Unable to delete record, it is new (and therefore doesn't exist in the database)."
            )

        statement = builder.build_delete(self.descriptor(), self.id())
        gateway.execute(self.get_database(), statement)

    def reload_in_place(self) -> None:
        """Discard in-memory values by reloading the row from the database."""
        self._reload()

    def reloaded_copy(self) -> "Record":
        """A copy of this record reloaded from the database; this one is untouched."""
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._attributes = AttributeMap(self._attributes)
        clone._tracker = self._tracker.copy()
        clone._reload()
        return clone

    # =========================================================================
    # Internals (used by the loader)
    # =========================================================================

    def _hydrate(self, data, run_filters: bool = True) -> None:
        with self._tracker.suspend():
            for field, value in data.items():
                self._attributes[field] = value
            if run_filters:
                self._pipeline.run_output(self)

    def _reload(self) -> None:
        statement = builder.build_select_by_pk(self.descriptor(), self.id())
        row = gateway.fetch_row(self.get_database(), statement)
        if row is None:
            raise NotFoundError(
                f"{type(self).__name__} record not found in database. (PK: {self.id()})",
                sql=statement.sql,
            )
        self._hydrate(row)

    def _insert(self) -> None:
        descriptor = self.descriptor()
        data = self.get()

        self.pre_insert(data)
        data = self._pipeline.run_input(self, data)

        statement = builder.build_insert(
            descriptor, data, self.columns(), ignore_key=self.ignore_key_on_insert
        )
        result = gateway.execute(self.get_database(), statement)

        if result.generated_key is not None:
            self._attributes[descriptor.pk] = result.generated_key

        self._new = False
        self._reload()
        self.post_insert()
