"""
Unit tests for criteria chain maintenance.
"""

import pytest

from extract_builder.core.exceptions import ValidationFailure
from extract_builder.extracts.criteria import Connector, CriteriaStep, append_step, finalize_steps, remove_step


def step(field_id, connector=None, value="X"):
    return CriteriaStep(field_id=field_id, operator_id=1, value=value, connector=connector)


def connectors(steps):
    return [s.connector.value if s.connector else None for s in steps]


class TestAppendStep:
    def test_inserts_after_target_and_sets_its_connector(self):
        steps = [step(1), step(2)]

        result = append_step(steps, 0, "OR")

        assert [s.field_id for s in result] == [1, None, 2]
        assert result[0].connector == Connector.OR
        assert result[1].connector is None

    def test_appending_to_last_row(self):
        result = append_step([step(1)], 0, Connector.AND)

        assert connectors(result) == ["AND", None]
        assert len(result) == 2

    def test_input_is_not_mutated(self):
        steps = [step(1)]

        append_step(steps, 0, "AND")

        assert len(steps) == 1
        assert steps[0].connector is None

    def test_lowercase_connector_is_accepted(self):
        assert append_step([step(1)], 0, "or")[0].connector == Connector.OR

    def test_unknown_connector_is_rejected(self):
        with pytest.raises(ValidationFailure):
            append_step([step(1)], 0, "XOR")

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_out_of_range_index_is_rejected(self, index):
        with pytest.raises(ValidationFailure):
            append_step([step(1)], index, "AND")


class TestRemoveStep:
    def test_middle_row_hands_connector_to_predecessor(self):
        steps = [step(1, "AND"), step(2, "OR"), step(3)]

        result = remove_step(steps, 1)

        assert [s.field_id for s in result] == [1, 3]
        assert connectors(result) == ["OR", None]

    def test_removing_last_row_clears_new_last_connector(self):
        steps = [step(1, "AND"), step(2, "OR"), step(3)]

        result = remove_step(steps, 2)

        assert [s.field_id for s in result] == [1, 2]
        assert connectors(result) == ["AND", None]

    def test_removing_first_row_keeps_remaining_connectors(self):
        steps = [step(1, "AND"), step(2, "OR"), step(3)]

        result = remove_step(steps, 0)

        assert [s.field_id for s in result] == [2, 3]
        assert connectors(result) == ["OR", None]

    def test_last_remaining_row_cannot_be_removed(self):
        with pytest.raises(ValidationFailure):
            remove_step([step(1)], 0)

    def test_out_of_range_index_is_rejected(self):
        with pytest.raises(ValidationFailure):
            remove_step([step(1), step(2)], 2)


class TestFinalizeSteps:
    def test_renumbers_and_repairs_connectors(self):
        steps = [step(1, "OR"), step(2), step(3, "AND")]
        steps[0].order = 7

        result = finalize_steps(steps)

        assert [s.order for s in result] == [1, 2, 3]
        assert connectors(result) == ["OR", "AND", None]

    def test_empty_chain_is_valid(self):
        assert finalize_steps([]) == []

    @pytest.mark.parametrize(
        "bad_step",
        [
            CriteriaStep(field_id=None, operator_id=1, value="X"),
            CriteriaStep(field_id=1, operator_id=None, value="X"),
            CriteriaStep(field_id=1, operator_id=1, value=None),
            CriteriaStep(field_id=1, operator_id=1, value="   "),
        ],
    )
    def test_incomplete_rows_are_rejected(self, bad_step):
        with pytest.raises(ValidationFailure):
            finalize_steps([step(1, "AND"), bad_step])

    def test_round_trip_through_builder_operations(self):
        steps = [step(1)]
        steps = append_step(steps, 0, "AND")
        steps[1] = step(2)
        steps = append_step(steps, 1, "OR")
        steps[2] = step(3)
        steps = remove_step(steps, 1)

        result = finalize_steps(steps)

        assert [s.field_id for s in result] == [1, 3]
        assert connectors(result) == ["OR", None]
