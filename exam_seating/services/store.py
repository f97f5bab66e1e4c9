import operator
import re
from functools import reduce
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type

from django.db import DatabaseError, models, transaction
from django.db.models import Q

from exam_seating.exceptions import ConstraintMissingError, StoreError


# PostgreSQL and SQLite wording for an ON CONFLICT target without a matching unique index.
_CONSTRAINT_MISSING = re.compile(
    r"no unique or exclusion constraint|does not match any primary key or unique constraint",
    re.IGNORECASE,
)


def is_constraint_missing(exc: BaseException) -> bool:
    return bool(_CONSTRAINT_MISSING.search(str(exc)))


def _translate(exc: DatabaseError) -> StoreError:
    if is_constraint_missing(exc):
        return ConstraintMissingError(str(exc))
    return StoreError(str(exc))


class StoreGateway:
    """
    Thin read/upsert/insert/delete layer over the ORM.

    Every database failure leaves as a StoreError; a conflict target with no
    backing unique constraint leaves as ConstraintMissingError so callers can
    choose a fallback. Each write runs in its own savepoint, so a failed
    statement never poisons an enclosing transaction.
    """

    def __init__(self, using: str = "default"):
        self.using = using

    def _manager(self, model: Type[models.Model]):
        return model._default_manager.using(self.using)

    def select(
        self,
        model: Type[models.Model],
        *,
        order_by: Sequence[str] = ("pk",),
        select_related: Sequence[str] = (),
        **filters: Any,
    ) -> List[models.Model]:
        queryset = self._manager(model).filter(**filters).order_by(*order_by)
        if select_related:
            queryset = queryset.select_related(*select_related)
        try:
            return list(queryset)
        except DatabaseError as exc:
            raise _translate(exc) from exc

    def upsert(
        self,
        model: Type[models.Model],
        records: Iterable[Dict[str, Any]],
        *,
        unique_fields: Sequence[str],
        update_fields: Optional[Sequence[str]] = None,
    ) -> List[models.Model]:
        """
        Insert ``records`` or update the rows they collide with on
        ``unique_fields``, then return the stored rows.
        """
        records = list(records)
        if not records:
            return []

        if update_fields is None:
            key_attnames = {model._meta.get_field(name).attname for name in unique_fields}
            update_fields = sorted(
                {key for record in records for key in record}
                - key_attnames
                - set(unique_fields)
                - {model._meta.pk.name, model._meta.pk.attname}
            )
        if not update_fields:
            # ON CONFLICT ... DO UPDATE needs a SET clause; rewriting the key
            # with its own value keeps the conflict target checked.
            update_fields = [
                name for name in unique_fields
                if not model._meta.get_field(name).primary_key
            ]

        objs = [model(**record) for record in records]
        try:
            with transaction.atomic(using=self.using):
                self._manager(model).bulk_create(
                    objs,
                    update_conflicts=True,
                    unique_fields=list(unique_fields),
                    update_fields=list(update_fields),
                )
        except DatabaseError as exc:
            raise _translate(exc) from exc

        return self._fetch_by_keys(model, records, unique_fields)

    def insert(
        self,
        model: Type[models.Model],
        records: Iterable[Dict[str, Any]],
    ) -> List[models.Model]:
        objs = [model(**record) for record in records]
        if not objs:
            return []
        try:
            with transaction.atomic(using=self.using):
                return self._manager(model).bulk_create(objs)
        except DatabaseError as exc:
            raise _translate(exc) from exc

    def delete(self, model: Type[models.Model], **filters: Any) -> int:
        try:
            with transaction.atomic(using=self.using):
                deleted, _ = self._manager(model).filter(**filters).delete()
        except DatabaseError as exc:
            raise _translate(exc) from exc
        return deleted

    def _fetch_by_keys(
        self,
        model: Type[models.Model],
        records: List[Dict[str, Any]],
        unique_fields: Sequence[str],
    ) -> List[models.Model]:
        attnames = [model._meta.get_field(name).attname for name in unique_fields]

        def key_value(record, name, attname):
            value = record.get(attname, record.get(name))
            return value.pk if isinstance(value, models.Model) else value

        lookups = [
            {attname: key_value(record, name, attname) for name, attname in zip(unique_fields, attnames)}
            for record in records
        ]
        if len(attnames) == 1:
            values = {lookup[attnames[0]] for lookup in lookups}
            condition = Q(**{f"{attnames[0]}__in": values})
        else:
            condition = reduce(operator.or_, (Q(**lookup) for lookup in lookups))
        return self._select_q(model, condition)

    def _select_q(self, model: Type[models.Model], condition: Q) -> List[models.Model]:
        try:
            return list(self._manager(model).filter(condition).order_by("pk"))
        except DatabaseError as exc:
            raise _translate(exc) from exc
