"""
Unit tests for catalog lookups and their cache.
"""

import pytest

from extract_builder.catalog.cache import CatalogCache
from extract_builder.catalog.dao import CatalogDAO
from extract_builder.catalog.models import LookupSelectField
from extract_builder.catalog.service import CatalogService


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CatalogCache(ttl_seconds=60, clock=clock)


@pytest.fixture
def service(db_session, catalog_ids, cache):
    return CatalogService(CatalogDAO(db_session), cache)


class TestCatalogCache:
    def test_hit_skips_loader(self, cache):
        calls = []

        def loader():
            calls.append(1)
            return ["value"]

        assert cache.get_or_load("key", loader) == ["value"]
        assert cache.get_or_load("key", loader) == ["value"]
        assert len(calls) == 1

    def test_entries_expire_after_ttl(self, cache, clock):
        values = iter(["first", "second"])

        assert cache.get_or_load("key", lambda: next(values)) == "first"
        clock.now += 59
        assert cache.get_or_load("key", lambda: next(values)) == "first"
        clock.now += 2
        assert cache.get_or_load("key", lambda: next(values)) == "second"

    def test_invalidate_one_key(self, cache):
        cache.get_or_load("a", lambda: 1)
        cache.get_or_load("b", lambda: 2)

        cache.invalidate("a")

        assert len(cache) == 1
        assert cache.get_or_load("a", lambda: 3) == 3

    def test_invalidate_everything(self, cache):
        cache.get_or_load("a", lambda: 1)
        cache.get_or_load("b", lambda: 2)

        cache.invalidate()

        assert len(cache) == 0

    def test_loader_errors_are_not_cached(self, cache):
        def failing():
            raise RuntimeError("store down")

        with pytest.raises(RuntimeError):
            cache.get_or_load("key", failing)

        assert len(cache) == 0

    def test_expired_entries_are_pruned_on_store(self, cache, clock):
        for key in range(5):
            cache.get_or_load(key, lambda: "stale")
        clock.now += 61

        cache.get_or_load("fresh", lambda: "value")

        assert len(cache) == 1


class TestCatalogService:
    def test_lines_of_business(self, service):
        lobs = service.get_lines_of_business()

        assert [lob.name for lob in lobs] == ["Commercial"]
        assert lobs[0].prefix == "COM"

    def test_sub_lines_of_business(self, service, catalog_ids):
        subs = service.get_sub_lines_of_business(catalog_ids["lob_id"])

        assert [(sub.id, sub.prefix) for sub in subs] == [(catalog_ids["sub_lob_id"], "LG")]

    def test_select_fields_use_display_names(self, service, catalog_ids):
        fields = service.get_select_fields(catalog_ids["lob_id"])

        assert [field.id for field in fields] == [1, 2, 3, 4, 5]
        assert fields[1].name == "Member Name"

    def test_select_fields_are_served_from_cache(self, service, db_session, catalog_ids):
        before = service.get_select_fields(catalog_ids["lob_id"])
        db_session.add(LookupSelectField(lob_id=catalog_ids["lob_id"], field_name="M.SSN", display_name="SSN"))
        db_session.commit()

        assert service.get_select_fields(catalog_ids["lob_id"]) == before

        service.cache.invalidate()
        assert len(service.get_select_fields(catalog_ids["lob_id"])) == len(before) + 1

    def test_criteria_values(self, service):
        assert [v.value for v in service.get_criteria_values(1)] == ["ACTIVE", "PENDING", "TERMED"]

    def test_free_text_field_has_no_values(self, service):
        assert service.get_criteria_values(2) == []

    def test_operators_follow_field_type(self, service, catalog_ids):
        varchar = service.get_operators("MC.STATUS", catalog_ids["lob_id"])
        dates = service.get_operators("MC.EFF_DATE", catalog_ids["lob_id"])

        assert [op.operator_symbol for op in varchar] == ["=", "!=", "LIKE"]
        assert {op.field_type for op in dates} == {"DATE"}
        assert len(dates) == 5

    @pytest.mark.parametrize("field_name,lob_id", [(None, 1), ("", 1), ("MC.STATUS", None)])
    def test_operators_need_field_and_lob(self, service, field_name, lob_id):
        assert service.get_operators(field_name, lob_id) == []

    def test_unknown_field_has_no_operators(self, service, catalog_ids):
        assert service.get_operators("M.UNKNOWN", catalog_ids["lob_id"]) == []

    def test_unknown_field_names_do_not_grow_the_cache(self, service, catalog_ids):
        service.get_operators("MC.STATUS", catalog_ids["lob_id"])
        size = len(service.cache)

        for i in range(100):
            assert service.get_operators(f"M.NOPE_{i}", catalog_ids["lob_id"]) == []

        assert len(service.cache) == size

    def test_fields_sharing_a_type_share_one_entry(self, service, catalog_ids):
        status = service.get_operators("MC.STATUS", catalog_ids["lob_id"])
        size = len(service.cache)

        assert service.get_operators("M.LAST_NAME", catalog_ids["lob_id"]) == status
        assert len(service.cache) == size

    def test_delivery_options(self, service):
        assert [f.name for f in service.get_file_formats()] == ["CSV", "TXT", "XLSX"]
        assert [(d.name, d.value) for d in service.get_file_delimiters()] == [
            ("Comma", ","),
            ("Pipe", "|"),
            ("Tab", "\t"),
        ]
        assert len(service.get_sftp_servers()) == 2
        assert [p.name for p in service.get_schedule_parameters()] == ["Daily", "Monthly", "Weekly"]
