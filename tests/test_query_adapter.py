"""Tests for QueryAdapter: filter -> sort -> page, and paging bookkeeping."""

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fleetgrid.errors import StoreUnavailable, UnknownColumn
from fleetgrid.grid.columns import VehicleColumn, build_vehicle_registry
from fleetgrid.grid.filter_sort import FilterSortSpec
from fleetgrid.grid.page_state import PageState
from fleetgrid.grid.query_adapter import QueryAdapter
from fleetgrid.vehicles.vehicle_models import VehicleRecord


@pytest.fixture
def fleet(session, make_vehicle, add_vehicles):
    """25 Fords and 8 Toyotas with distinct plates and varied mileage."""
    records = []
    for i in range(25):
        records.append(
            make_vehicle(
                license_number=f"FD-{i:04d}",
                brand="Ford",
                model=["Focus", "Fiesta", "Kuga"][i % 3],
                mileage=1000 + (i * 7919) % 50000,
                registration_date=f"20{10 + i % 10}-0{1 + i % 9}-15",
            )
        )
    for i in range(8):
        records.append(
            make_vehicle(
                license_number=f"TY-{i:04d}",
                brand="Toyota",
                model="Corolla",
                mileage=2000 + i * 1500,
            )
        )
    add_vehicles(session, records)
    return records


def brand_spec(text="Fo", **kwargs):
    return FilterSortSpec(filter_column=VehicleColumn.BRAND, filter_text=text, **kwargs)


def test_first_page_of_25_filtered_records(session, fleet):
    adapter = QueryAdapter()
    state = PageState(page_size=10, page=1)

    records = adapter.fetch_and_update_paging(session, brand_spec(), state)

    assert len(records) == 10
    assert state.total_item_count == 25
    assert state.page_items == 10


def test_last_partial_page_of_25_filtered_records(session, fleet):
    adapter = QueryAdapter()
    state = PageState(page_size=10, page=3)

    records = adapter.fetch_and_update_paging(session, brand_spec(), state)

    assert len(records) == 5
    assert state.total_item_count == 25
    assert state.page_items == 5


def test_page_past_the_end_is_empty(session, fleet):
    adapter = QueryAdapter()
    state = PageState(page_size=10, page=4)

    records = adapter.fetch_and_update_paging(session, brand_spec(), state)

    assert records == []
    assert state.page_items == 0
    assert state.total_item_count == 25


def test_page_items_matches_window_for_many_sizes(session, fleet):
    """page_items = min(page_size, count - skip) while skip < count, else 0."""
    adapter = QueryAdapter()
    spec = brand_spec()
    count = adapter.count(session, spec)
    assert count == 25

    for page_size in (1, 3, 4, 7, 10, 25, 30):
        for page in range(1, 30 // page_size + 3):
            state = PageState(page_size=page_size, page=page)
            records = adapter.fetch_and_update_paging(session, spec, state)
            expected = min(page_size, count - state.skip) if state.skip < count else 0
            assert state.page_items == expected == len(records)
            assert 0 <= state.page_items <= page_size


def test_brand_filter_returns_only_matching_brand(session, make_vehicle, add_vehicles):
    add_vehicles(
        session,
        [
            make_vehicle(license_number="F-1", brand="Ford"),
            make_vehicle(license_number="T-1", brand="Toyota", model="Yaris"),
        ],
    )
    records = QueryAdapter().fetch_and_update_paging(session, brand_spec("Fo"), PageState())
    assert [r.brand for r in records] == ["Ford"]


def test_every_filtered_record_contains_the_text(session, fleet):
    adapter = QueryAdapter()
    for column, text in (
        (VehicleColumn.LICENSE_NUMBER, "-001"),
        (VehicleColumn.MODEL, "ie"),
        (VehicleColumn.BRAND, "yot"),
    ):
        spec = FilterSortSpec(filter_column=column, filter_text=text)
        state = PageState(page_size=100)
        records = adapter.fetch_and_update_paging(session, spec, state)
        assert records, f"expected matches for {column.value} ~ {text}"
        assert all(text in getattr(r, column.value) for r in records)

        # and nothing that contains it was left out
        expected = sum(1 for r in fleet if getattr(r, column.value) and text in getattr(r, column.value))
        assert state.total_item_count == expected


def test_filter_is_case_sensitive_by_default(session, fleet):
    adapter = QueryAdapter()
    assert adapter.count(session, brand_spec("fo")) == 0
    assert adapter.count(session, brand_spec("Fo")) == 25


def test_case_insensitive_registry(session, fleet):
    adapter = QueryAdapter(build_vehicle_registry(case_sensitive=False))
    assert adapter.count(session, brand_spec("fO")) == 25


@pytest.mark.parametrize("case_sensitive", [True, False])
def test_like_wildcards_are_literal(session, fleet, case_sensitive):
    adapter = QueryAdapter(build_vehicle_registry(case_sensitive=case_sensitive))
    assert adapter.count(session, brand_spec("%")) == 0
    assert adapter.count(session, brand_spec("_")) == 0


def test_blank_filter_text_means_no_filter(session, fleet):
    adapter = QueryAdapter()
    assert adapter.count(session, brand_spec("")) == 33
    assert adapter.count(session, brand_spec("   ")) == 33


@pytest.mark.parametrize("column", list(VehicleColumn))
def test_sort_order_ascending_and_descending(session, fleet, column):
    adapter = QueryAdapter()
    for ascending in (True, False):
        spec = FilterSortSpec(sort_column=column, sort_ascending=ascending)
        records = adapter.fetch_and_update_paging(session, spec, PageState(page_size=100))
        keys = [getattr(r, column.value) for r in records]
        pairs = list(zip(keys, keys[1:]))
        if ascending:
            assert all(a <= b for a, b in pairs)
        else:
            assert all(a >= b for a, b in pairs)


def test_pages_partition_the_sorted_result(session, fleet):
    """Consecutive pages of a fixed filter+sort neither overlap nor skip rows."""
    adapter = QueryAdapter()
    spec = brand_spec(sort_column=VehicleColumn.MODEL)  # many equal keys
    everything = adapter.fetch_page(session, spec, PageState(page_size=100))

    paged = []
    for page in range(1, 5):
        paged.extend(adapter.fetch_page(session, spec, PageState(page_size=7, page=page)))

    assert [r.id for r in paged] == [r.id for r in everything]


def test_count_ignores_paging(session, fleet):
    adapter = QueryAdapter()
    assert adapter.count(session, FilterSortSpec()) == 33


def test_fetch_page_does_not_touch_page_state(session, fleet):
    state = PageState(page_size=5, page=2)
    records = QueryAdapter().fetch_page(session, brand_spec(), state)
    assert len(records) == 5
    assert state.total_item_count == 0
    assert state.page_items == 0


def test_records_are_detached_snapshots(session, fleet):
    records = QueryAdapter().fetch_page(session, FilterSortSpec(), PageState(page_size=3))
    assert all(isinstance(r, VehicleRecord) for r in records)
    with pytest.raises(PydanticValidationError):
        records[0].brand = "Changed"


def test_unregistered_filter_column_propagates_unknown_column(session, fleet):
    adapter = QueryAdapter()
    spec = FilterSortSpec(filter_column=VehicleColumn.MILEAGE, filter_text="100")
    state = PageState()
    with pytest.raises(UnknownColumn):
        adapter.fetch_and_update_paging(session, spec, state)
    assert state.total_item_count == 0


def test_unregistered_filter_column_is_fine_without_text(session, fleet):
    spec = FilterSortSpec(filter_column=VehicleColumn.MILEAGE, filter_text="")
    assert QueryAdapter().count(session, spec) == 33


def test_store_failure_surfaces_as_store_unavailable(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing-dir' / 'db.sqlite'}")
    broken = sessionmaker(bind=engine)()
    try:
        with pytest.raises(StoreUnavailable):
            QueryAdapter().fetch_and_update_paging(broken, FilterSortSpec(), PageState())
    finally:
        broken.close()


def test_case_insensitive_filter_keeps_non_ascii_matches(session, make_vehicle, add_vehicles):
    """The insensitive variant never returns fewer rows than the sensitive one."""
    add_vehicles(
        session,
        [
            make_vehicle(license_number="EC-1", brand="ÉCOCAR"),
            make_vehicle(license_number="EC-2", brand="Écocar"),
        ],
    )
    sensitive = QueryAdapter()
    insensitive = QueryAdapter(build_vehicle_registry(case_sensitive=False))

    assert sensitive.count(session, brand_spec("ÉCO")) == 1
    assert insensitive.count(session, brand_spec("ÉCO")) == 2
    assert insensitive.count(session, brand_spec("Écocar")) == 2
    assert insensitive.count(session, brand_spec("ÉCOCAR")) == 2
