"""Tests for weight validation, normalization and the weight configuration store."""

import pytest
from sqlalchemy import func, select

from hottopic.config import DEFAULT_WEIGHTS
from hottopic.core.errors import NotFoundError, ValidationError
from hottopic.db.models import WeightConfigurationRow
from hottopic.repository.weights import normalize_weights, validate_weights
from hottopic.schemas import (
    DemandWeights,
    ExposureWeights,
    OverallWeights,
    WeightConfiguration,
)


def _active_count(session_factory):
    with session_factory() as session:
        return session.scalar(
            select(func.count()).select_from(WeightConfigurationRow).where(WeightConfigurationRow.is_active.is_(True))
        )


class TestValidateWeights:
    def test_defaults_are_valid(self):
        validate_weights(WeightConfiguration())

    def test_sum_within_tolerance_is_accepted(self):
        validate_weights(WeightConfiguration(overall=OverallWeights(exposure=0.405, engagement=0.35, demand=0.25)))

    def test_group_sum_off_names_group_and_deviation(self):
        config = WeightConfiguration(overall=OverallWeights(exposure=0.5, engagement=0.35, demand=0.25))

        with pytest.raises(ValidationError) as exc_info:
            validate_weights(config)

        assert exc_info.value.field == "overall"
        assert "1.1000" in exc_info.value.message
        assert "+0.1000" in exc_info.value.message

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_weight_out_of_range(self, value):
        config = WeightConfiguration(
            exposure=ExposureWeights(news=value, video=0.2, microblog=0.2, photo=0.15, short_video=0.15)
        )

        with pytest.raises(ValidationError) as exc_info:
            validate_weights(config)

        assert exc_info.value.field == "exposure.news"


class TestNormalizeWeights:
    @pytest.fixture
    def skewed(self):
        return WeightConfiguration(
            exposure=ExposureWeights(news=3, video=1, microblog=1, photo=0, short_video=0),
            demand=DemandWeights(trend=0, video=0, microblog=0, photo=0, short_video=0),
        )

    def test_groups_sum_to_one(self, skewed):
        normalized = normalize_weights(skewed)

        assert normalized.exposure.news == pytest.approx(0.6)
        assert sum(normalized.exposure.model_dump().values()) == pytest.approx(1.0)

    def test_zero_group_left_unchanged(self, skewed):
        assert normalize_weights(skewed).demand == skewed.demand

    def test_idempotent(self, skewed):
        once = normalize_weights(skewed)
        twice = normalize_weights(once)

        assert twice == once

    def test_input_not_modified(self, skewed):
        normalize_weights(skewed)

        assert skewed.exposure.news == 3


class TestWeightConfigurationStore:
    def test_get_active_creates_default_when_empty(self, weight_store, session_factory):
        active = weight_store.get_active()

        assert active.id is not None
        assert active.is_active is True
        assert active.name == "Default"
        assert active.groups() == DEFAULT_WEIGHTS
        assert _active_count(session_factory) == 1

    def test_get_active_rechecks_before_creating_default(self, weight_store, session_factory, monkeypatch):
        existing = weight_store.get_active()
        real_find = weight_store._find_active
        lookups = []

        def stale_first_lookup():
            lookups.append(1)
            return None if len(lookups) == 1 else real_find()

        monkeypatch.setattr(weight_store, "_find_active", stale_first_lookup)

        assert weight_store.get_active().id == existing.id
        assert len(lookups) == 2
        assert len(weight_store.history()) == 1
        assert _active_count(session_factory) == 1

    def test_get_active_is_stable(self, weight_store):
        assert weight_store.get_active().id == weight_store.get_active().id

    def test_save_activates_and_deactivates_previous(self, weight_store, session_factory):
        first = weight_store.get_active()

        saved = weight_store.save(
            WeightConfiguration(name="News heavy", overall=OverallWeights(exposure=0.6, engagement=0.2, demand=0.2))
        )

        assert saved.is_active is True
        assert weight_store.get_active().id == saved.id
        assert weight_store.get(first.id).is_active is False
        assert _active_count(session_factory) == 1

    def test_invalid_save_leaves_active_untouched(self, weight_store, session_factory):
        first = weight_store.get_active()

        with pytest.raises(ValidationError):
            weight_store.save(WeightConfiguration(overall=OverallWeights(exposure=0.9, engagement=0.9, demand=0.9)))

        assert weight_store.get_active().id == first.id
        assert _active_count(session_factory) == 1

    def test_activate_existing(self, weight_store, session_factory):
        first = weight_store.get_active()
        weight_store.save(WeightConfiguration(name="Second"))

        activated = weight_store.activate(first.id)

        assert activated.id == first.id
        assert activated.is_active is True
        assert weight_store.get_active().id == first.id
        assert _active_count(session_factory) == 1

    def test_activate_missing_raises(self, weight_store):
        weight_store.get_active()

        with pytest.raises(NotFoundError):
            weight_store.activate(999)

    def test_get_missing_raises(self, weight_store):
        with pytest.raises(NotFoundError):
            weight_store.get(42)

    def test_history_newest_first_and_limited(self, weight_store):
        for i in range(4):
            weight_store.save(WeightConfiguration(name=f"config-{i}"))

        history = weight_store.history(limit=3)

        assert [c.name for c in history] == ["config-3", "config-2", "config-1"]
        assert [c.is_active for c in history] == [True, False, False]

    def test_saved_configuration_is_always_valid(self, weight_store):
        """Every stored configuration satisfies the sum invariant."""
        weight_store.save(weight_store.normalize(WeightConfiguration(
            exposure=ExposureWeights(news=2, video=2, microblog=2, photo=2, short_video=2)
        )))

        for config in weight_store.history(limit=10):
            validate_weights(config)
