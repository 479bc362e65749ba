"""
Weight configuration store.

Configurations are append-only: saving always inserts a new row and
activation only flips ``is_active``. Exactly one row is active after any
successful ``save``/``activate``; the swap happens inside one transaction
under a process-wide lock, and a partial unique index on ``is_active``
rejects a second active row from any other writer.
"""
from __future__ import annotations

import logging
import math
import threading
from datetime import timezone
from typing import Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hottopic.config import DEFAULT_WEIGHT_DESCRIPTION, DEFAULT_WEIGHT_NAME, WEIGHT_SUM_EPSILON
from hottopic.core.errors import NotFoundError, PersistenceError, ValidationError
from hottopic.db.models import WeightConfigurationRow
from hottopic.schemas import WEIGHT_GROUPS, WeightConfiguration

logger = logging.getLogger(__name__)

# Shared by every store instance in the process
_activation_lock = threading.Lock()


def validate_weights(config: WeightConfiguration) -> None:
    """
    Check that every weight lies in [0, 1] and every group sums to 1.

    Raises:
        ValidationError: Naming the first offending group and by how much it is off
    """
    for group, weights in config.groups().items():
        for key, value in weights.items():
            if not 0.0 <= value <= 1.0:
                raise ValidationError(
                    f"Weight '{group}.{key}' must be between 0 and 1 (got {value})",
                    field=f"{group}.{key}",
                )
        total = sum(weights.values())
        deviation = total - 1.0
        if abs(deviation) > WEIGHT_SUM_EPSILON:
            raise ValidationError(
                f"Weights in group '{group}' must sum to 1 (sum is {total:.4f}, off by {deviation:+.4f})",
                field=group,
            )


def normalize_weights(config: WeightConfiguration) -> WeightConfiguration:
    """
    Scale each group so its weights sum to 1.

    A group summing to zero has nothing to scale, and a group already summing
    to 1 is kept as is, so normalizing twice gives the same result.
    The input configuration is not modified.
    """
    updates: Dict[str, Dict[str, float]] = {}
    for group, weights in config.groups().items():
        total = sum(weights.values())
        if total == 0 or math.isclose(total, 1.0, rel_tol=1e-12):
            updates[group] = weights
            continue
        updates[group] = {key: value / total for key, value in weights.items()}

    data = config.model_dump()
    data.update(updates)
    return WeightConfiguration.model_validate(data)


def _to_schema(row: WeightConfigurationRow) -> WeightConfiguration:
    created_at = row.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return WeightConfiguration(
        id=row.id,
        name=row.name,
        description=row.description or "",
        is_active=bool(row.is_active),
        created_at=created_at,
        **{group: getattr(row, group) for group in WEIGHT_GROUPS},
    )


class WeightConfigurationStore:
    """Persists named weight configurations and tracks the active one."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_active(self) -> WeightConfiguration:
        """Return the active configuration, creating the default when none exists."""
        active = self._find_active()
        if active is not None:
            return active

        with _activation_lock:
            # Another caller may have created the default while we waited
            active = self._find_active()
            if active is not None:
                return active
            logger.info("No active weight configuration; creating default")
            return self._insert_active(
                WeightConfiguration(name=DEFAULT_WEIGHT_NAME, description=DEFAULT_WEIGHT_DESCRIPTION)
            )

    def get(self, config_id: int) -> WeightConfiguration:
        with self.session_factory() as session:
            row = session.get(WeightConfigurationRow, config_id)
            if row is None:
                raise NotFoundError(f"Weight configuration {config_id} not found")
            return _to_schema(row)

    def save(self, candidate: WeightConfiguration) -> WeightConfiguration:
        """
        Validate and store a new configuration, making it the active one.

        Raises:
            ValidationError: If any weight group violates the sum/range invariant
            PersistenceError: If the store write fails
        """
        validate_weights(candidate)

        with _activation_lock:
            return self._insert_active(candidate)

    def activate(self, config_id: int) -> WeightConfiguration:
        """Make an existing configuration the only active one."""
        with _activation_lock:
            try:
                with self.session_factory() as session, session.begin():
                    row = session.get(WeightConfigurationRow, config_id)
                    if row is None:
                        raise NotFoundError(f"Weight configuration {config_id} not found")
                    self._deactivate_all(session)
                    row.is_active = True
                    session.flush()
                    activated = _to_schema(row)
            except SQLAlchemyError as e:
                raise PersistenceError(f"Failed to activate weight configuration: {e}") from e

        logger.info("Weight configuration %s activated", config_id)
        return activated

    def history(self, limit: int = 10) -> List[WeightConfiguration]:
        """Most recent configurations first."""
        with self.session_factory() as session:
            rows = session.scalars(
                select(WeightConfigurationRow)
                .order_by(WeightConfigurationRow.created_at.desc(), WeightConfigurationRow.id.desc())
                .limit(limit)
            ).all()
            return [_to_schema(row) for row in rows]

    def _find_active(self) -> Optional[WeightConfiguration]:
        with self.session_factory() as session:
            row = session.scalars(
                select(WeightConfigurationRow).where(WeightConfigurationRow.is_active.is_(True))
            ).first()
            return _to_schema(row) if row is not None else None

    def _insert_active(self, candidate: WeightConfiguration) -> WeightConfiguration:
        """Insert ``candidate`` as the only active row. Caller holds the activation lock."""
        try:
            with self.session_factory() as session, session.begin():
                self._deactivate_all(session)
                row = WeightConfigurationRow(
                    name=candidate.name,
                    description=candidate.description,
                    is_active=True,
                    **candidate.groups(),
                )
                session.add(row)
                session.flush()
                saved = _to_schema(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save weight configuration: {e}") from e

        logger.info("Weight configuration %s (%s) saved and activated", saved.id, saved.name)
        return saved

    @staticmethod
    def normalize(candidate: WeightConfiguration) -> WeightConfiguration:
        return normalize_weights(candidate)

    @staticmethod
    def _deactivate_all(session: Session) -> None:
        session.execute(
            update(WeightConfigurationRow)
            .where(WeightConfigurationRow.is_active.is_(True))
            .values(is_active=False)
        )
        # Push the deactivation before the new active row hits the unique index
        session.flush()
