"""ZooKeeper status through Solr nodes, with the static-config fallback."""
import pytest

from conftest import DC1_ZK, zk_member, zk_status
from solrlens.core.exceptions import UpstreamUnavailable
from solrlens.domain.services.ensemble_prober import (
    UNREACHABLE_ERROR,
    EnsembleProber,
    normalize_member,
    summarize_zk_status,
    summary_from_config,
)


@pytest.fixture
def prober(http):
    return EnsembleProber(http=http)


@pytest.fixture
def london(topology):
    return topology.datacenters[0]


class TestProbe:
    @pytest.mark.asyncio
    async def test_healthy_ensemble(self, prober, fake_solr, london):
        fake_solr.add("solr1:8983", "/admin/zookeeper/status", DC1_ZK)
        summary = await prober.probe(london, timeout=1.0)
        assert summary.overallStatus == "green"
        assert summary.totalMembers == summary.connectedMembers == 3
        assert summary.mode == "ensemble"
        assert summary.retrievedFromHost == "solr1"
        assert summary.members[0].role == "leader"
        assert summary.dynamicReconfigEnabled is True

    @pytest.mark.asyncio
    async def test_two_of_three_connected_is_yellow(self, prober, fake_solr, london):
        fake_solr.add("solr1:8983", "/admin/zookeeper/status", zk_status(
            zk_member("zk1:2181", state="leader"),
            zk_member("zk2:2181"),
            zk_member("zk3:2181", ok=False),
        ))
        summary = await prober.probe(london, timeout=1.0)
        assert summary.overallStatus == "yellow"
        assert summary.connectedMembers == 2
        assert summary.totalMembers == 3

    @pytest.mark.asyncio
    async def test_falls_through_to_next_node(self, prober, fake_solr, london):
        fake_solr.down.add("solr1:8983")
        fake_solr.add("solr2:8982", "/admin/zookeeper/status", DC1_ZK)
        summary = await prober.probe(london, timeout=1.0)
        assert summary.retrievedFromHost == "solr2"

    @pytest.mark.asyncio
    async def test_empty_zk_status_is_skipped(self, prober, fake_solr, london):
        fake_solr.add("solr1:8983", "/admin/zookeeper/status", {"zkStatus": {}})
        fake_solr.add("solr2:8982", "/admin/zookeeper/status", DC1_ZK)
        summary = await prober.probe(london, timeout=1.0)
        assert summary.retrievedFromHost == "solr2"

    @pytest.mark.asyncio
    async def test_no_node_answers_falls_back_to_config(self, prober, fake_solr, london):
        fake_solr.down.update({"solr1:8983", "solr2:8982"})
        summary = await prober.probe(london, timeout=1.0)
        assert summary.overallStatus == "unreachable"
        assert summary.errors == [UNREACHABLE_ERROR]
        assert [m.hostname for m in summary.members] == ["zk1", "zk2", "zk3"]
        assert all(m.status == "unknown" for m in summary.members)
        assert summary.connectionString == "zk1:2181,zk2:2181,zk3:2181"

    @pytest.mark.asyncio
    async def test_candidates_restrict_the_walk(self, prober, fake_solr, london):
        fake_solr.add("solr1:8983", "/admin/zookeeper/status", DC1_ZK)
        summary = await prober.probe(london, timeout=1.0, candidates=[london.nodes[1]])
        assert summary.overallStatus == "unreachable"
        assert fake_solr.hits("solr1:8983", "/admin/zookeeper/status") == 0


class TestFetchDetails:
    @pytest.mark.asyncio
    async def test_returns_raw_status(self, prober, fake_solr, london):
        fake_solr.add("solr2:8982", "/admin/zookeeper/status", DC1_ZK)
        fake_solr.down.add("solr1:8983")
        details = await prober.fetch_details(london, timeout=1.0)
        assert details.retrievedFrom == "solr2"
        assert details.zkStatus == DC1_ZK["zkStatus"]

    @pytest.mark.asyncio
    async def test_raises_when_nothing_answers(self, prober, fake_solr, london):
        fake_solr.slow.update({"solr1:8983", "solr2:8982"})
        with pytest.raises(UpstreamUnavailable, match="London"):
            await prober.fetch_details(london, timeout=1.0)


class TestNormalization:
    def test_member_defaults(self):
        member = normalize_member({}, 1)
        assert (member.hostname, member.port) == ("zookeeper-2", 2181)
        assert member.status == "disconnected"
        assert member.role == "unknown"

    def test_member_numeric_strings(self):
        member = normalize_member(zk_member("zk9:2281", server_id=7), 0)
        assert (member.hostname, member.port) == ("zk9", 2281)
        assert member.serverId == "7"
        assert member.activeConnections == 5
        assert member.avgLatencyMs == 0.25
        assert member.clientPort == 2181

    def test_role_key_fallback(self):
        assert normalize_member({"role": "Observer"}, 0).role == "observer"

    def test_wrong_typed_ok_is_disconnected(self):
        assert normalize_member({"ok": "true"}, 0).status == "disconnected"

    def test_zero_members_is_unknown(self):
        summary = summarize_zk_status("dc", {"mode": "ensemble", "details": []}, retrieved_from="solr1")
        assert summary.overallStatus == "unknown"
        assert summary.totalMembers == 0

    def test_raw_details_align_with_members(self):
        summary = summarize_zk_status("dc", DC1_ZK["zkStatus"], retrieved_from="solr1")
        assert len(summary.rawDetails) == len(summary.members)
        assert summary.rawDetails[0]["host"] == "zk1:2181"

    def test_config_fallback_without_hosts(self, topology):
        dc = topology.datacenters[1].model_copy(update={"ensemble_hosts": ()})
        summary = summary_from_config(dc)
        assert summary.overallStatus == "unreachable"
        assert summary.members == []
