"""A dealer lists a truck, adds a photo, then sells it off the lot."""

import io

from PIL import Image

from dealer_catalog.schemas.category import CategoryCreateRequest
from dealer_catalog.schemas.common import validate_payload
from dealer_catalog.schemas.vehicle import VehicleCreateRequest, VehicleListFilters
from dealer_catalog.storage import LocalStorage


def test_category_vehicle_image_lifecycle(services, storage: LocalStorage, make_image, list_stored_files):
    category = services.categories.create_category(validate_payload(CategoryCreateRequest, {
        "nameLocal": "ダンプ", "nameGlobal": "Dump", "slug": "dump",
    }))
    assert category["slug"] == "dump"

    vehicle = services.vehicles.create_vehicle(validate_payload(VehicleCreateRequest, {
        "category": "dump", "make": "Isuzu", "model": "Forward",
        "year": 2020, "mileage": 50000, "price": 5000000,
        "features": ["パワーゲート", "ETC"],
    }))

    image = services.media.upload_image(vehicle["id"], make_image(1000, 800), "image/jpeg")

    thumb_path = f"thumbnails/thumb_{image['filename']}"
    full_path = f"images/{image['filename']}"
    with open(f"{storage.root}/{thumb_path}", "rb") as f:
        with Image.open(io.BytesIO(f.read())) as thumb:
            assert thumb.size[0] <= 300 and thumb.size[1] <= 200

    listed = services.vehicles.list_vehicles(VehicleListFilters(category="dump"))
    assert listed["totalCount"] == 1
    assert listed["items"][0]["images"][0]["thumbnailUrl"] == image["thumbnailUrl"]
    assert services.vehicles.search_vehicles("forward")[0]["id"] == vehicle["id"]

    services.vehicles.delete_vehicle(vehicle["id"])

    assert not storage.exists(full_path)
    assert not storage.exists(thumb_path)
    assert list_stored_files() == []
    assert services.vehicles.list_vehicles(VehicleListFilters())["totalCount"] == 0
    # category is free to go once nothing references it
    services.categories.delete_category(category["id"])
    assert services.categories.list_categories() == []
