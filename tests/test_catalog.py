import pytest

from config import settings
from services import catalog
from services.errors import NotFound


def test_cake_without_images_gets_placeholder(db, make_cake):
    cake = make_cake()

    view = catalog.get_cake(db, cake.id)

    assert view.images == []
    assert view.primary_image == settings.FALLBACK_IMAGE_URL


def test_first_image_is_primary(db, make_cake):
    cake = make_cake(images=("https://img.example.com/a.jpg", "https://img.example.com/b.jpg"))

    view = catalog.get_cake(db, cake.id)

    assert view.images == ["https://img.example.com/a.jpg", "https://img.example.com/b.jpg"]
    assert view.primary_image == "https://img.example.com/a.jpg"


def test_list_is_ordered_by_name(db, make_cake):
    make_cake(name="Vanilla Sponge", categories=("Classic",))
    make_cake(name="Apple Pie", categories=("Fruit",))
    make_cake(name="Carrot Cake", categories=("Classic",))

    names = [c.name for c in catalog.list_cakes(db)]

    assert names == ["Apple Pie", "Carrot Cake", "Vanilla Sponge"]


def test_category_filter_matches_any(db, make_cake):
    make_cake(name="Vanilla Sponge", categories=("Classic",))
    make_cake(name="Apple Pie", categories=("Fruit",))
    make_cake(name="Black Forest", categories=("Chocolate", "Fruit"))

    fruit = [c.name for c in catalog.list_cakes(db, categories=["fruit"])]
    mixed = [c.name for c in catalog.list_cakes(db, categories=["Classic", "Chocolate"])]

    assert fruit == ["Apple Pie", "Black Forest"]
    assert mixed == ["Black Forest", "Vanilla Sponge"]


def test_name_search(db, make_cake):
    make_cake(name="Vanilla Sponge")
    make_cake(name="Chocolate Sponge", categories=("Cocoa",))
    make_cake(name="Apple Pie", categories=("Fruit",))

    names = [c.name for c in catalog.list_cakes(db, q="sponge")]

    assert names == ["Chocolate Sponge", "Vanilla Sponge"]


def test_view_carries_categories(db, make_cake):
    cake = make_cake(categories=("Chocolate", "Birthday"))

    view = catalog.get_cake(db, cake.id)

    assert view.categories == ["Birthday", "Chocolate"]
    assert view.price == 100.0


def test_unknown_cake(db):
    with pytest.raises(NotFound):
        catalog.get_cake(db, 12345)


def test_primary_image_helper():
    assert catalog.primary_image(iter(["x", "y"])) == "x"
    assert catalog.primary_image([]) == settings.FALLBACK_IMAGE_URL
