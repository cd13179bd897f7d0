"""Tests for loading, validating and selecting inventories."""

import json

import pytest

from migration_simulator.inventory import (
    InventoryLoadError,
    load_naming_suggestion,
    load_source_inventory,
    parse_source_inventory,
    select_databases,
    validate_naming_suggestion,
    validate_source_inventory,
)


SOURCE_DOC = {
    "servers": [
        {
            "instanceName": "SRVPR01",
            "connectionSuccess": True,
            "sqlVersion": "Microsoft SQL Server 2016",
            "databases": [
                {"name": "master", "dataSizeMB": 10, "logSizeMB": 2},
                {"name": "Sales", "dataSizeMB": 307200, "logSizeMB": 10240, "state": "ONLINE"},
                {"name": "HR", "dataSizeMB": 2048, "logSizeMB": 512, "totalSizeMB": 2560},
            ],
        },
        {
            "instanceName": "SRVPR02\\BI",
            "connectionSuccess": True,
            "databases": [
                {"name": "SalesHistory", "dataSizeMB": 1024, "logSizeMB": 0},
                {"name": "tempdb", "dataSizeMB": 8, "logSizeMB": 8},
            ],
        },
        {
            "instanceName": "SRVPR03",
            "connectionSuccess": False,
            "errorMessage": "Login timeout expired",
            "databases": [{"name": "Orphan", "dataSizeMB": 1, "logSizeMB": 1}],
        },
    ]
}

NAMING_DOC = {
    "baseName": "SSPR22",
    "nextAvailableNumber": 3,
    "environment": "PR",
    "targetVersion": "22",
    "existingInstances": ["SSPR22-01", "SSPR22-02"],
    "existingInstancesInfo": [
        {
            "name": "SSPR22-01",
            "connectionSuccess": True,
            "currentDataSizeMB": 409600,
            "currentLogSizeMB": 20480,
            "currentDatabaseCount": 2,
            "currentDatabaseNames": ["Legacy", "Billing"],
            "currentDataDiskCount": 1,
            "lastDataDiskLetter": "I",
        },
        {"name": "SSPR22-02", "connectionSuccess": False, "errorMessage": "unreachable"},
    ],
}


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def source_file(tmp_path):
    return write_json(tmp_path / "sources.json", SOURCE_DOC)


@pytest.fixture
def naming_file(tmp_path):
    return write_json(tmp_path / "naming.json", NAMING_DOC)


class TestLoadSourceInventory:

    def test_system_databases_removed(self, source_file):
        inventory = load_source_inventory(source_file)

        names = [db.name for server in inventory.servers for db in server.databases]
        assert names == ["Sales", "HR", "SalesHistory", "Orphan"]

    def test_databases_stamped_with_server(self, source_file):
        inventory = load_source_inventory(source_file)

        sales = inventory.servers[0].databases[0]
        assert sales.instance_name == "SRVPR01"
        assert sales.key == "SRVPR01||Sales"
        assert sales.total_size_mb == 317440
        assert sales.data_gb == 300.0

    def test_server_totals_exclude_system_databases(self, source_file):
        inventory = load_source_inventory(source_file)

        first = inventory.servers[0]
        assert first.total_data_size_mb == 307200 + 2048
        assert first.total_log_size_mb == 10240 + 512

    def test_explicit_total_kept(self, source_file):
        inventory = load_source_inventory(source_file)

        assert inventory.servers[0].databases[1].total_size_mb == 2560

    def test_bare_list_accepted(self):
        inventory = parse_source_inventory(SOURCE_DOC["servers"])

        assert len(inventory.servers) == 3
        assert [s.instance_name for s in inventory.connected_servers] == ["SRVPR01", "SRVPR02\\BI"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(InventoryLoadError, match="File not found"):
            load_source_inventory(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(InventoryLoadError, match="Invalid JSON"):
            load_source_inventory(path)

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes('{"servers": [{"instanceName": "SRVé"}]}'.encode("latin-1"))

        with pytest.raises(InventoryLoadError, match="Invalid JSON"):
            load_source_inventory(path)

    def test_directory_path(self, tmp_path):
        with pytest.raises(InventoryLoadError, match="Cannot read"):
            load_source_inventory(tmp_path)

        with pytest.raises(InventoryLoadError, match="Cannot read"):
            load_naming_suggestion(tmp_path)

    def test_schema_violation(self):
        with pytest.raises(InventoryLoadError, match="Invalid source inventory"):
            parse_source_inventory({"servers": [{"instanceName": "X", "databases": [{"dataSizeMB": 1}]}]})

    def test_wrong_document_type(self):
        with pytest.raises(InventoryLoadError):
            parse_source_inventory("SRVPR01")


class TestLoadNamingSuggestion:

    def test_fields(self, naming_file):
        naming = load_naming_suggestion(naming_file)

        assert naming.base_name == "SSPR22"
        assert naming.next_available_number == 3
        assert naming.target_version == "22"
        assert len(naming.existing_instances_info) == 2

        first = naming.existing_instances_info[0]
        assert first.current_data_size_mb == 409600
        assert first.current_database_names == ["Legacy", "Billing"]
        assert first.current_data_disk_count == 1

    def test_not_an_object(self, tmp_path):
        path = write_json(tmp_path / "naming.json", ["SSPR22"])

        with pytest.raises(InventoryLoadError, match="must be a JSON object"):
            load_naming_suggestion(path)


class TestSelectDatabases:

    @pytest.fixture
    def inventory(self):
        return parse_source_inventory(SOURCE_DOC)

    def test_everything_from_connected_servers(self, inventory):
        selected = select_databases(inventory)

        assert [db.name for db in selected] == ["Sales", "HR", "SalesHistory"]

    def test_by_key(self, inventory):
        selected = select_databases(inventory, keys=["SRVPR01||HR", "SRVPR03||Orphan"])

        assert [db.key for db in selected] == ["SRVPR01||HR"]

    def test_by_instance(self, inventory):
        selected = select_databases(inventory, instances=["srvpr02\\bi"])

        assert [db.name for db in selected] == ["SalesHistory"]

    def test_by_name_filter(self, inventory):
        selected = select_databases(inventory, name_filter="sales")

        assert [db.name for db in selected] == ["Sales", "SalesHistory"]

    def test_criteria_combined(self, inventory):
        selected = select_databases(inventory, instances=["SRVPR01"], name_filter="sales")

        assert [db.name for db in selected] == ["Sales"]


class TestValidation:

    def test_valid_source_inventory(self, source_file):
        is_valid, issues = validate_source_inventory(source_file)

        assert is_valid
        assert issues == []

    def test_no_servers(self, tmp_path):
        is_valid, issues = validate_source_inventory(write_json(tmp_path / "s.json", {"servers": []}))

        assert not is_valid
        assert issues == ["No source servers listed"]

    def test_nothing_connected(self, tmp_path):
        doc = {"servers": [{"instanceName": "SRVPR03", "connectionSuccess": False}]}

        is_valid, issues = validate_source_inventory(write_json(tmp_path / "s.json", doc))

        assert not is_valid
        assert "No source server connected successfully" in issues

    def test_duplicate_databases(self, tmp_path):
        doc = {"servers": [{
            "instanceName": "SRVPR01",
            "connectionSuccess": True,
            "databases": [{"name": "Sales"}, {"name": "SALES"}],
        }]}

        is_valid, issues = validate_source_inventory(write_json(tmp_path / "s.json", doc))

        assert not is_valid
        assert issues == ["SRVPR01: duplicate databases sales"]

    def test_unreadable_source_file(self, tmp_path):
        is_valid, issues = validate_source_inventory(tmp_path / "missing.json")

        assert not is_valid
        assert "File not found" in issues[0]

    def test_not_utf8_source_file(self, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes('{"servers": [{"instanceName": "SRVé"}]}'.encode("latin-1"))

        is_valid, issues = validate_source_inventory(path)

        assert not is_valid
        assert "Invalid JSON" in issues[0]

    def test_directory_paths(self, tmp_path):
        assert validate_source_inventory(tmp_path)[0] is False

        is_valid, issues = validate_naming_suggestion(tmp_path)
        assert not is_valid
        assert "Cannot read" in issues[0]

    def test_valid_naming(self, naming_file):
        assert validate_naming_suggestion(naming_file) == (True, [])

    def test_invalid_naming(self, tmp_path):
        doc = {"baseName": " ", "nextAvailableNumber": 0}

        is_valid, issues = validate_naming_suggestion(write_json(tmp_path / "n.json", doc))

        assert not is_valid
        assert issues == ["baseName is empty", "nextAvailableNumber must be at least 1"]
