import pytest

from services.errors import NotFoundError, ValidationError


class TestPartService:
    """Tests for PartService and its category references."""

    def test_create_part(self, services):
        part = services.parts.create("Front Left Headlight", "8K0941003")

        assert part.id > 0
        assert part.name == "Front Left Headlight"
        assert part.part_number == "8K0941003"
        assert services.parts.find(part.id) == part

    def test_create_blank_name_rejected(self, services):
        with pytest.raises(ValidationError):
            services.parts.create("  ")

    def test_find_all_ordered_by_name(self, services):
        services.parts.create("Wing Mirror")
        services.parts.create("Alternator")

        assert [p.name for p in services.parts.find_all()] == [
            "Alternator",
            "Wing Mirror",
        ]

    def test_tag_and_categories_for(self, services):
        lighting = services.categories.create("Lighting")
        headlights = services.categories.create("Headlights", parent_id=lighting.id)
        part = services.parts.create("Front Left Headlight")

        services.parts.tag(part.id, headlights.id)
        services.parts.tag(part.id, lighting.id)

        assert [c.name for c in services.parts.categories_for(part.id)] == [
            "Headlights",
            "Lighting",
        ]

    def test_tag_twice_is_idempotent(self, services):
        category = services.categories.create("Alternators")
        part = services.parts.create("Alternator 90A")

        services.parts.tag(part.id, category.id)
        services.parts.tag(part.id, category.id)

        with services.db_manager.connect() as conn:
            assert services.parts.reference_count(conn, category.id) == 1

    def test_tag_missing_category_rejected(self, services):
        part = services.parts.create("Alternator 90A")

        with pytest.raises(NotFoundError) as exc_info:
            services.parts.tag(part.id, 9999)

        assert exc_info.value.category_id == 9999

    def test_tag_missing_part_rejected(self, services):
        category = services.categories.create("Alternators")

        with pytest.raises(NotFoundError, match="Part with ID 9999 not found"):
            services.parts.tag(9999, category.id)

    def test_untag(self, services):
        category = services.categories.create("Alternators")
        part = services.parts.create("Alternator 90A")
        services.parts.tag(part.id, category.id)

        assert services.parts.untag(part.id, category.id) is True
        assert services.parts.untag(part.id, category.id) is False
        assert services.parts.categories_for(part.id) == []

    def test_reference_count_counts_parts(self, services):
        category = services.categories.create("Mirrors")
        for name in ("Left Mirror", "Right Mirror"):
            services.parts.tag(services.parts.create(name).id, category.id)

        with services.db_manager.connect() as conn:
            assert services.parts.reference_count(conn, category.id) == 2

    def test_deleting_part_releases_category(self, services):
        category = services.categories.create("Mirrors")
        part = services.parts.create("Left Mirror")
        services.parts.tag(part.id, category.id)

        assert services.parts.delete(part.id) is True

        services.categories.delete(category.id)
        assert services.categories.find(category.id) is None
