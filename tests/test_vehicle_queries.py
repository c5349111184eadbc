"""Listing, search and related-vehicle queries."""

import pytest

from dealer_catalog.models.vehicle import VehicleStatus
from dealer_catalog.schemas.common import validate_payload
from dealer_catalog.schemas.vehicle import RelatedQuery, VehicleListFilters
from dealer_catalog.utils.exceptions import ValidationException


@pytest.fixture
def add(services, dump_category, crane_category, vehicle_input):
    def _add(**overrides) -> dict:
        return services.vehicles.create_vehicle(vehicle_input(**overrides))
    return _add


def ids(items) -> list[int]:
    return [v["id"] for v in items]


def related(services, reference: dict, price: int, **extra) -> list[dict]:
    query = RelatedQuery(vehicleId=reference["id"], category=reference["category"], price=price, **extra)
    return services.vehicles.related_vehicles(query)


class TestListVehicles:
    def test_newest_first(self, services, add):
        first, second, third = add(), add(), add()

        result = services.vehicles.list_vehicles(VehicleListFilters())

        assert ids(result["items"]) == [third["id"], second["id"], first["id"]]
        assert result["totalCount"] == 3
        assert result["page"] == 1

    def test_category_filter(self, services, add):
        dump = add(category="dump")
        add(category="crane")

        result = services.vehicles.list_vehicles(VehicleListFilters(category="dump"))

        assert ids(result["items"]) == [dump["id"]]
        assert result["totalCount"] == 1

    def test_filters_are_conjunctive(self, services, add):
        match = add(category="dump", price=5_000_000, year=2020)
        add(category="crane", price=5_000_000, year=2020)
        add(category="dump", price=9_000_000, year=2020)
        add(category="dump", price=5_000_000, year=2010)

        result = services.vehicles.list_vehicles(VehicleListFilters(
            category="dump", minPrice=4_000_000, maxPrice=6_000_000, minYear=2015, maxYear=2022,
        ))

        assert ids(result["items"]) == [match["id"]]

    def test_bounds_are_inclusive(self, services, add):
        low = add(price=1_000_000, year=2015)
        high = add(price=2_000_000, year=2020)

        result = services.vehicles.list_vehicles(VehicleListFilters(
            minPrice=1_000_000, maxPrice=2_000_000, minYear=2015, maxYear=2020,
        ))

        assert ids(result["items"]) == [high["id"], low["id"]]

    def test_pagination(self, services, add):
        created = [add(make=f"Make{i}") for i in range(5)]

        page_two = services.vehicles.list_vehicles(VehicleListFilters(page=2, pageSize=2))
        page_three = services.vehicles.list_vehicles(VehicleListFilters(page=3, pageSize=2))

        assert ids(page_two["items"]) == [created[2]["id"], created[1]["id"]]
        assert ids(page_three["items"]) == [created[0]["id"]]
        assert page_two["totalCount"] == 5
        assert page_two["pageSize"] == 2

    def test_page_beyond_end_is_empty(self, services, add):
        add()

        result = services.vehicles.list_vehicles(VehicleListFilters(page=10))

        assert result["items"] == []
        assert result["totalCount"] == 1

    @pytest.mark.parametrize("params", [{"page": 0}, {"pageSize": 0}, {"pageSize": 101}])
    def test_invalid_paging(self, params):
        with pytest.raises(ValidationException):
            validate_payload(VehicleListFilters, params)


class TestSearch:
    def test_matches_make_case_insensitively(self, services, add):
        isuzu = add(make="Isuzu")
        add(make="Hino", descriptionGlobal="Clean truck", descriptionLocal="きれい")

        assert ids(services.vehicles.search_vehicles("isuzu")) == [isuzu["id"]]
        assert ids(services.vehicles.search_vehicles("ISU")) == [isuzu["id"]]

    def test_matches_any_text_field(self, services, add):
        by_model = add(make="Hino", model="Profia", descriptionGlobal="x", descriptionLocal="x")
        by_desc = add(make="Fuso", model="Canter", descriptionGlobal="Has a tail lift",
                      descriptionLocal="x")
        by_local_desc = add(make="UD", model="Quon", descriptionGlobal="x",
                            descriptionLocal="パワーゲート付き")
        by_category = add(category="crane", make="Tadano", model="TM", descriptionGlobal="x",
                          descriptionLocal="x")

        assert ids(services.vehicles.search_vehicles("profia")) == [by_model["id"]]
        assert ids(services.vehicles.search_vehicles("tail lift")) == [by_desc["id"]]
        assert ids(services.vehicles.search_vehicles("パワーゲート")) == [by_local_desc["id"]]
        assert ids(services.vehicles.search_vehicles("Crane")) == [by_category["id"]]
        assert ids(services.vehicles.search_vehicles("クレーン")) == [by_category["id"]]

    def test_results_are_newest_first(self, services, add):
        older = add(make="Isuzu")
        newer = add(make="Isuzu")

        assert ids(services.vehicles.search_vehicles("isuzu")) == [newer["id"], older["id"]]

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_returns_nothing(self, services, add, query):
        add()

        assert services.vehicles.search_vehicles(query) == []

    def test_no_match(self, services, add):
        add()

        assert services.vehicles.search_vehicles("volvo") == []

    def test_wildcards_are_literal(self, services, add):
        add(make="Isuzu", model="Forward")

        assert services.vehicles.search_vehicles("%") == []
        assert services.vehicles.search_vehicles("_suzu") == []


class TestRelated:
    def test_same_category_first_then_backfill(self, services, add):
        reference = add(price=5_000_000)
        near = add(price=5_200_000)
        far = add(price=4_500_000)
        add(price=5_000_000, status=VehicleStatus.SOLD)
        add(price=5_050_000, status=VehicleStatus.RESERVED)
        add(price=8_000_000)
        other = add(category="crane", price=5_100_000)

        found = related(services, reference, 5_000_000, limit=4)

        assert ids(found) == [near["id"], far["id"], other["id"]]
        assert all(v["status"] == "available" for v in found)

    def test_limit_truncates(self, services, add):
        reference = add(price=5_000_000)
        near = add(price=5_200_000)
        add(price=4_500_000)
        add(category="crane", price=5_000_000)

        found = related(services, reference, 5_000_000, limit=1)

        assert ids(found) == [near["id"]]

    def test_band_edges_are_inclusive(self, services, add):
        reference = add(price=1_000_000)
        bottom = add(price=700_000)
        top = add(price=1_300_000)
        add(price=699_999)
        add(price=1_300_001)

        found = related(services, reference, 1_000_000, limit=10)

        assert set(ids(found)) == {bottom["id"], top["id"]}

    def test_ties_prefer_newer(self, services, add):
        reference = add(price=5_000_000)
        older = add(price=5_100_000)
        newer = add(price=4_900_000)

        found = related(services, reference, 5_000_000)

        assert ids(found) == [newer["id"], older["id"]]

    def test_never_includes_reference(self, services, add):
        reference = add(price=5_000_000)

        assert related(services, reference, 5_000_000) == []

    @pytest.mark.parametrize("params, field", [
        ({"price": 0}, "price"),
        ({"price": -1}, "price"),
        ({"price": 100, "limit": 0}, "limit"),
        ({"price": 100, "limit": 101}, "limit"),
    ])
    def test_query_bounds(self, params, field):
        with pytest.raises(ValidationException) as exc:
            validate_payload(RelatedQuery, {"vehicleId": 1, "category": "dump", **params})

        assert [d["field"] for d in exc.value.details] == [field]

    def test_default_limit(self, services, add):
        reference = add(price=5_000_000)
        for offset in range(6):
            add(price=5_000_000 + (offset + 1) * 10_000)

        assert len(related(services, reference, 5_000_000)) == 4
