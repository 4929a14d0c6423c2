"""Topology model validation and the topology store."""
import copy
import json

import pytest

from conftest import TOPOLOGY_DOC
from solrlens.core.config import Settings
from solrlens.core.exceptions import ConfigurationError
from solrlens.domain.models.topology import Topology, node_id
from solrlens.services.topology_store import TopologyStore, load_topology, parse_topology


class TestTopologyModel:
    def test_parses_aliases_and_order(self, topology):
        assert topology.datacenter_names == ["London", "Paris"]
        london = topology.datacenters[0]
        assert london.is_default is True
        assert [h.address for h in london.ensemble_hosts] == ["zk1:2181", "zk2:2181", "zk3:2181"]
        assert london.default_node.name == "solr1"
        assert london.nodes[1].base_url == "http://solr2:8982/solr"

    def test_node_id_lowercases_datacenter(self):
        assert node_id("solr1", "London") == "solr1-london"

    def test_default_datacenter_falls_back_to_first(self):
        doc = copy.deepcopy(TOPOLOGY_DOC)
        doc["datacenters"][0]["default"] = False
        assert Topology.model_validate(doc).default_datacenter.name == "London"

    def test_duplicate_datacenter_rejected(self):
        doc = copy.deepcopy(TOPOLOGY_DOC)
        doc["datacenters"][1]["name"] = "London"
        with pytest.raises(ValueError, match="Duplicate datacenter"):
            Topology.model_validate(doc)

    def test_duplicate_node_in_datacenter_rejected(self):
        doc = copy.deepcopy(TOPOLOGY_DOC)
        doc["datacenters"][0]["nodes"][1]["name"] = "solr1"
        with pytest.raises(ValueError, match="Duplicate node"):
            Topology.model_validate(doc)

    def test_node_id_collision_rejected(self):
        doc = {
            "datacenters": [
                {"name": "dc", "nodes": [{"name": "a", "host": "h1", "port": 1}]},
                {"name": "DC", "nodes": [{"name": "a", "host": "h2", "port": 1}]},
            ]
        }
        with pytest.raises(ValueError, match="collides"):
            Topology.model_validate(doc)

    def test_to_config_round_trips_file_shape(self, topology):
        cfg = topology.to_config()
        assert cfg["datacenters"][0]["zookeeperNodes"][0] == {"host": "zk1", "port": 2181}
        assert cfg["datacenters"][0]["default"] is True


class TestParseTopology:
    def test_invalid_json(self):
        with pytest.raises(ConfigurationError, match="Invalid topology JSON"):
            parse_topology("{not json", "test")

    def test_invalid_shape(self):
        with pytest.raises(ConfigurationError, match="Invalid topology"):
            parse_topology(json.dumps({"datacenters": [{"nodes": []}]}), "test")

    def test_several_defaults_warns(self, caplog):
        doc = copy.deepcopy(TOPOLOGY_DOC)
        doc["datacenters"][1]["default"] = True
        topology = parse_topology(json.dumps(doc), "test")
        assert topology.default_datacenter.name == "London"
        assert "Several datacenters are flagged default" in caplog.text


class TestLoadTopology:
    def test_inline_json_wins(self, monkeypatch, tmp_path):
        path = tmp_path / "dc.json"
        path.write_text(json.dumps({"datacenters": []}))
        monkeypatch.setenv("DC_CONFIG_JSON", json.dumps(TOPOLOGY_DOC))
        monkeypatch.setenv("DC_CONFIG_PATH", str(path))
        assert load_topology(Settings(_env_file=None)).datacenter_names == ["London", "Paris"]

    def test_reads_file(self, monkeypatch, tmp_path):
        path = tmp_path / "dc.json"
        path.write_text(json.dumps(TOPOLOGY_DOC))
        monkeypatch.delenv("DC_CONFIG_JSON", raising=False)
        monkeypatch.setenv("SOLRLENS_DC_CONFIG_PATH", str(path))
        assert len(load_topology(Settings(_env_file=None)).datacenters) == 2

    def test_missing_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DC_CONFIG_JSON", raising=False)
        monkeypatch.setenv("DC_CONFIG_PATH", str(tmp_path / "nope.json"))
        with pytest.raises(ConfigurationError, match="Failed to read"):
            load_topology(Settings(_env_file=None))

    def test_nothing_configured(self, monkeypatch):
        for var in ("DC_CONFIG_JSON", "DC_CONFIG_PATH", "SOLRLENS_DC_CONFIG_JSON", "SOLRLENS_DC_CONFIG_PATH"):
            monkeypatch.delenv(var, raising=False)
        with pytest.raises(ConfigurationError, match="must be set"):
            load_topology(Settings(_env_file=None))


class TestTopologyStore:
    def test_snapshot_raises_load_error(self, monkeypatch):
        monkeypatch.setenv("DC_CONFIG_JSON", "[broken")
        store = TopologyStore(Settings(_env_file=None))
        assert store.reload() is None
        with pytest.raises(ConfigurationError):
            store.snapshot()

    def test_failed_reload_keeps_last_good(self, monkeypatch, tmp_path):
        path = tmp_path / "dc.json"
        path.write_text(json.dumps(TOPOLOGY_DOC))
        monkeypatch.delenv("DC_CONFIG_JSON", raising=False)
        monkeypatch.setenv("DC_CONFIG_PATH", str(path))
        store = TopologyStore(Settings(_env_file=None))
        first = store.reload()

        path.write_text("{oops")
        assert store.reload() is first
        assert store.snapshot() is first

    def test_reload_swaps_snapshot(self, monkeypatch, tmp_path):
        path = tmp_path / "dc.json"
        path.write_text(json.dumps(TOPOLOGY_DOC))
        monkeypatch.delenv("DC_CONFIG_JSON", raising=False)
        monkeypatch.setenv("DC_CONFIG_PATH", str(path))
        store = TopologyStore(Settings(_env_file=None))
        store.reload()

        doc = copy.deepcopy(TOPOLOGY_DOC)
        doc["datacenters"].pop()
        path.write_text(json.dumps(doc))
        store.reload()
        assert store.snapshot().datacenter_names == ["London"]
