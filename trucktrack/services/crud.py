from __future__ import annotations

from typing import Any, Iterable, Type, TypeVar

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from trucktrack.services.errors import NotFoundError

T = TypeVar("T")


def get_or_404(db: Session, model: Type[T], obj_id: Any, label: str) -> T:
    """Charge un enregistrement ou lève NotFoundError("<label> <id> introuvable")."""
    obj = db.get(model, obj_id) if obj_id is not None else None
    if obj is None:
        raise NotFoundError(f"{label} {obj_id} introuvable")
    return obj


def apply_updates(obj: Any, data: dict, *, skip: Iterable[str] = ("id",)) -> Any:
    """
    Copie les champs connus du dict sur l'objet ORM (PATCH partiel).

    Un `None` explicite sur une colonne NOT NULL lève ValueError.
    """
    skipped = set(skip)
    columns = inspect(type(obj)).columns
    for field, value in data.items():
        if field in skipped or not hasattr(obj, field):
            continue
        column = columns.get(field)
        if value is None and column is not None and not column.nullable:
            raise ValueError(f"Le champ {field} est obligatoire")
        setattr(obj, field, value)
    return obj


def create(db: Session, model: Type[T], data: dict) -> T:
    obj = model(**data)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update(db: Session, obj: T, data: dict) -> T:
    apply_updates(obj, data)
    db.commit()
    db.refresh(obj)
    return obj


def delete(db: Session, obj: Any) -> None:
    db.delete(obj)
    db.commit()
