"""Tests for data disk layout and per-database disk estimates."""

import pytest

from conftest import make_db
from migration_simulator.config import DiskConfig
from migration_simulator.disk_layout import (
    assign_database_disks,
    disk_letter_range,
    existing_disk_count,
    layout_data_disks,
)
from migration_simulator.schema import DiskInfo


@pytest.fixture
def disks():
    return DiskConfig()


def summary(layout):
    return [(d.letter, d.used_gb) for d in layout]


class TestNewInstanceLayout:
    """Layout of instances created by the simulation."""

    def test_empty_instance_has_one_disk(self, disks):
        assert summary(layout_data_disks(0, disks)) == [("I", 0.0)]

    def test_fills_disks_in_order(self, disks):
        layout = layout_data_disks(1000, disks)

        assert summary(layout) == [("I", 450.0), ("J", 450.0), ("K", 100.0)]
        assert all(not d.is_existing_disk for d in layout)
        assert all(d.new_gb == d.used_gb for d in layout)

    def test_exact_multiple_uses_no_extra_disk(self, disks):
        assert summary(layout_data_disks(900, disks)) == [("I", 450.0), ("J", 450.0)]

    def test_overflow_lands_on_last_letter(self, disks):
        layout = layout_data_disks(10000, disks)

        assert len(layout) == 18
        assert layout[0].letter == "I"
        assert layout[-1].letter == "Z"
        assert layout[-1].used_gb == 2350.0

    def test_existing_flag_without_data_lays_out_as_new(self, disks):
        layout = layout_data_disks(100, disks, pre_existing_data_gb=0, is_existing=True)

        assert summary(layout) == [("I", 100.0)]
        assert not layout[0].is_existing_disk


class TestExistingInstanceLayout:
    """Layout of existing instances receiving more data."""

    def test_preexisting_spread_then_last_disk_filled(self, disks):
        layout = layout_data_disks(
            900, disks, pre_existing_data_gb=600, is_existing=True, observed_disk_count=2,
        )

        assert [(d.letter, d.used_gb, d.pre_existing_gb, d.new_gb) for d in layout] == [
            ("I", 300.0, 300.0, 0.0),
            ("J", 450.0, 300.0, 150.0),
            ("K", 150.0, 0.0, 150.0),
        ]
        assert [d.is_existing_disk for d in layout] == [True, True, False]

    def test_no_new_data_keeps_existing_disks(self, disks):
        layout = layout_data_disks(400, disks, pre_existing_data_gb=400, is_existing=True)

        assert summary(layout) == [("I", 400.0)]
        assert layout[0].new_gb == 0.0

    def test_disk_count_estimated_from_data(self, disks):
        layout = layout_data_disks(1000, disks, pre_existing_data_gb=1000, is_existing=True)

        assert summary(layout) == [("I", 333.3), ("J", 333.3), ("K", 333.3)]

    @pytest.mark.parametrize("pre_gb,observed,expected", [
        (0, 0, 1),
        (400, 0, 1),
        (451, 0, 2),
        (100, 3, 3),
        (100, 30, 18),
    ])
    def test_existing_disk_count(self, disks, pre_gb, observed, expected):
        assert existing_disk_count(pre_gb, observed, disks) == expected


class TestDatabaseDiskAssignment:
    """Estimated target disk of each database."""

    def test_first_disk_with_room(self):
        dbs = [make_db("a", 300), make_db("b", 200), make_db("c", 100)]
        layout = [DiskInfo(letter="I", used_gb=450), DiskInfo(letter="J", used_gb=150)]

        assignments = assign_database_disks(dbs, layout, 450)

        assert assignments == {
            dbs[0].key: "I",
            dbs[1].key: "J",
            dbs[2].key: "I",
        }

    def test_preexisting_load_counts(self):
        dbs = [make_db("a", 100)]
        layout = [
            DiskInfo(letter="I", used_gb=400, is_existing_disk=True, pre_existing_gb=400),
            DiskInfo(letter="J", used_gb=100, new_gb=100),
        ]

        assert assign_database_disks(dbs, layout, 450) == {dbs[0].key: "J"}

    def test_falls_back_to_first_disk(self):
        dbs = [make_db("huge", 900)]
        layout = [DiskInfo(letter="I", used_gb=450), DiskInfo(letter="J", used_gb=450)]

        assert assign_database_disks(dbs, layout, 450) == {dbs[0].key: "I"}

    def test_no_disks(self):
        dbs = [make_db("a", 1)]

        assert assign_database_disks(dbs, [], 450) == {dbs[0].key: "?"}


class TestDiskLetterRange:

    @pytest.mark.parametrize("count,expected", [
        (0, "-"),
        (1, "I:"),
        (4, "I: to L:"),
        (18, "I: to Z:"),
        (25, "I: to Z:"),
    ])
    def test_range(self, count, expected):
        assert disk_letter_range(count) == expected

    def test_custom_letters(self):
        assert disk_letter_range(2, "EFG") == "E: to F:"
