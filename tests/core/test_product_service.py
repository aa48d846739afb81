"""
Tests for Product Service.
"""

import pytest
from datetime import date

from upkeep.errors import NotFoundError, ValidationError
from upkeep.models.commands import CreateProductCommand, ProductQuery, UpdateProductCommand


class TestProductServiceCreate:
    """Tests for ProductService.create_product()."""

    @pytest.mark.asyncio
    async def test_create_product_minimal(self, product_service):
        product = await product_service.create_product("alice", CreateProductCommand(name="Bike"))

        assert product.name == "Bike"
        assert product.slug == "bike"
        assert product.task_ids == []
        assert product.tags == []

    @pytest.mark.asyncio
    async def test_create_product_full(self, product_service):
        product = await product_service.create_product(
            "alice",
            CreateProductCommand(
                name="  Espresso Machine  ",
                category="kitchen",
                manufacturer="Gaggia",
                model="Classic Pro",
                tags=["coffee", " ", "daily "],
                purchase_date=date(2023, 5, 4),
            ),
        )

        fetched = await product_service.get_product("alice", product.id)

        assert fetched.name == "Espresso Machine"
        assert fetched.slug == "espresso-machine"
        assert fetched.manufacturer == "Gaggia"
        assert fetched.tags == ["coffee", "daily"]
        assert fetched.purchase_date == date(2023, 5, 4)

    @pytest.mark.asyncio
    async def test_slug_unique_per_owner(self, product_service):
        first = await product_service.create_product("alice", CreateProductCommand(name="Car"))
        second = await product_service.create_product("alice", CreateProductCommand(name="car"))
        third = await product_service.create_product("alice", CreateProductCommand(name="Car!"))
        other = await product_service.create_product("bob", CreateProductCommand(name="Car"))

        assert [first.slug, second.slug, third.slug] == ["car", "car-2", "car-3"]
        assert other.slug == "car"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "  ", "x" * 101])
    async def test_create_rejects_bad_name(self, product_service, name):
        with pytest.raises(ValidationError) as exc:
            await product_service.create_product("alice", CreateProductCommand(name=name))

        assert exc.value.field == "name"


class TestProductServiceGet:
    """Tests for reading products."""

    @pytest.mark.asyncio
    async def test_get_by_slug(self, product_service, product):
        fetched = await product_service.get_product_by_slug("alice", "lawn-mower")

        assert fetched.id == product.id

    @pytest.mark.asyncio
    async def test_get_foreign_product(self, product_service, product):
        with pytest.raises(NotFoundError):
            await product_service.get_product("bob", product.id)
        with pytest.raises(NotFoundError):
            await product_service.get_product_by_slug("bob", "lawn-mower")

    @pytest.mark.asyncio
    async def test_overall_maintenance(self, product_service, task_service, product, interval_command, clock):
        oil = await task_service.create_task("alice", product.id, interval_command())
        blade = await task_service.create_task(
            "alice", product.id, interval_command(name="Sharpen blade", frequency=90)
        )

        fetched = await product_service.get_product("alice", product.id)
        assert fetched.last_overall_maintenance is None
        assert fetched.next_overall_maintenance.id == oil.id

        clock.current = date(2024, 1, 20)
        await task_service.complete_task("alice", oil.id)

        fetched = await product_service.get_product("alice", product.id)
        assert fetched.last_overall_maintenance.id == oil.id
        assert fetched.next_overall_maintenance.id == oil.id
        assert fetched.next_overall_maintenance.next_maintenance == date(2024, 2, 19)

        clock.current = date(2024, 1, 25)
        await task_service.complete_task("alice", blade.id)

        fetched = await product_service.get_product("alice", product.id)
        assert fetched.last_overall_maintenance.id == blade.id
        assert fetched.to_dict()["next_overall_maintenance"]["id"] == oil.id


class TestProductServiceList:
    """Tests for ProductService.list_products()."""

    @pytest.mark.asyncio
    async def test_sorted_by_name(self, product_service):
        for name in ["zebra grill", "Apple tree", "mower"]:
            await product_service.create_product("alice", CreateProductCommand(name=name))

        page = await product_service.list_products("alice")

        assert [p.name for p in page.items] == ["Apple tree", "mower", "zebra grill"]
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_filter_and_search(self, product_service):
        await product_service.create_product("alice", CreateProductCommand(name="Road bike", category="bikes"))
        await product_service.create_product("alice", CreateProductCommand(name="Gravel bike", category="bikes"))
        await product_service.create_product("alice", CreateProductCommand(name="Kettle", category="kitchen"))

        bikes = await product_service.list_products("alice", ProductQuery(category="bikes"))
        gravel = await product_service.list_products("alice", ProductQuery(search="GRAVEL"))

        assert bikes.total == 2
        assert [p.name for p in gravel.items] == ["Gravel bike"]

    @pytest.mark.asyncio
    async def test_search_folds_non_ascii(self, product_service):
        await product_service.create_product("alice", CreateProductCommand(name="Éclairage jardin"))
        await product_service.create_product("alice", CreateProductCommand(name="Espresso machine"))

        page = await product_service.list_products("alice", ProductQuery(search="ÉCLAIRAGE"))

        assert [p.name for p in page.items] == ["Éclairage jardin"]
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_paging(self, product_service):
        for i in range(5):
            await product_service.create_product("alice", CreateProductCommand(name=f"Item {i}"))

        page = await product_service.list_products("alice", ProductQuery(page=3, limit=2))

        assert [p.name for p in page.items] == ["Item 4"]
        assert page.total_pages == 3

    @pytest.mark.asyncio
    async def test_list_categories(self, product_service):
        await product_service.create_product("alice", CreateProductCommand(name="A", category="kitchen"))
        await product_service.create_product("alice", CreateProductCommand(name="B", category="garden"))
        await product_service.create_product("alice", CreateProductCommand(name="C", category="garden"))
        await product_service.create_product("alice", CreateProductCommand(name="D"))
        await product_service.create_product("bob", CreateProductCommand(name="E", category="garage"))

        assert await product_service.list_categories("alice") == ["garden", "kitchen"]


class TestProductServiceUpdate:
    """Tests for ProductService.update_product()."""

    @pytest.mark.asyncio
    async def test_rename_reslugs(self, product_service, product):
        updated = await product_service.update_product(
            "alice", product.id, UpdateProductCommand(name="Ride-on Mower", model="X300")
        )

        assert updated.slug == "ride-on-mower"
        assert updated.model == "X300"
        assert updated.category == "garden"

    @pytest.mark.asyncio
    async def test_rename_keeps_own_slug(self, product_service, product):
        updated = await product_service.update_product(
            "alice", product.id, UpdateProductCommand(name="LAWN MOWER")
        )

        assert updated.slug == "lawn-mower"

    @pytest.mark.asyncio
    async def test_update_foreign_product(self, product_service, product):
        with pytest.raises(NotFoundError):
            await product_service.update_product("bob", product.id, UpdateProductCommand(name="Mine"))


class TestProductServiceDelete:
    """Tests for ProductService.delete_product()."""

    @pytest.mark.asyncio
    async def test_delete_cascades_to_tasks(self, product_service, task_service, product, interval_command):
        task = await task_service.create_task("alice", product.id, interval_command())

        await product_service.delete_product("alice", product.id)

        with pytest.raises(NotFoundError):
            await product_service.get_product("alice", product.id)
        with pytest.raises(NotFoundError):
            await task_service.get_task_by_id("alice", task.id)

    @pytest.mark.asyncio
    async def test_delete_foreign_product(self, product_service, product):
        with pytest.raises(NotFoundError):
            await product_service.delete_product("bob", product.id)

        assert (await product_service.get_product("alice", product.id)).id == product.id

    @pytest.mark.asyncio
    async def test_delete_is_logged(self, product_service, action_service, product):
        await product_service.delete_product("alice", product.id)

        actions = await action_service.list_actions("alice", entity_id=product.id)

        assert {a.action for a in actions} == {"CREATE", "DELETE"}
