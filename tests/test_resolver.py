import pytest

from conftest import ALL_NAMED_DOC
from solrlens.core.exceptions import NotFoundError
from solrlens.domain.models.topology import Topology
from solrlens.domain.services.resolver import QueryResolver


@pytest.fixture
def resolver(topology):
    return QueryResolver(topology)


def names(targets):
    return [t.node.name for t in targets]


class TestResolve:
    def test_no_selector_returns_everything_in_order(self, resolver):
        assert names(resolver.resolve()) == ["solr1", "solr2", "solr3"]

    @pytest.mark.parametrize("dc", [None, "", "all"])
    def test_all_means_no_restriction(self, resolver, dc):
        assert names(resolver.resolve(dc)) == ["solr1", "solr2", "solr3"]

    def test_datacenter_returns_its_nodes_in_order(self, resolver):
        targets = resolver.resolve("London")
        assert names(targets) == ["solr1", "solr2"]
        assert {t.datacenter.name for t in targets} == {"London"}

    def test_unknown_datacenter(self, resolver):
        with pytest.raises(NotFoundError, match="Datacenter 'Tokyo' not found"):
            resolver.resolve("Tokyo")

    def test_node_in_any_datacenter(self, resolver):
        [target] = resolver.resolve(node="solr3")
        assert target.datacenter.name == "Paris"
        assert target.node_id == "solr3-paris"

    def test_unknown_node(self, resolver):
        with pytest.raises(NotFoundError, match="solr9"):
            resolver.resolve(node="solr9")

    def test_node_must_belong_to_named_datacenter(self, resolver):
        with pytest.raises(NotFoundError, match="not found in datacenter 'London'"):
            resolver.resolve("London", "solr3")

    def test_load_all_false_keeps_default_nodes(self, resolver):
        targets = resolver.resolve(load_all=False)
        assert names(targets) == ["solr1", "solr3"]
        assert all(t.is_default for t in targets)

    def test_load_all_false_never_drops_named_node(self, resolver):
        assert names(resolver.resolve(node="solr2", load_all=False)) == ["solr2"]


class TestLookups:
    def test_find_node_by_id(self, resolver):
        target = resolver.find_node_by_id("solr2-london")
        assert target.node.port == 8982
        assert not target.is_default

    def test_find_node_by_unknown_id(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.find_node_by_id("solr2-paris")


class TestDatacenterNamedAll:
    @pytest.fixture
    def resolver(self):
        return QueryResolver(Topology.model_validate(ALL_NAMED_DOC))

    def test_real_datacenter_wins_over_alias(self, resolver):
        targets = resolver.resolve("all")
        assert names(targets) == ["a1"]
        assert {t.datacenter.name for t in targets} == {"all"}

    def test_is_all(self, resolver, topology):
        assert not resolver.is_all("all")
        assert QueryResolver(topology).is_all("all")
        assert not QueryResolver(topology).is_all("London")


class TestFindDatacenter:
    def test_exact_match_only_by_default(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.find_datacenter("london")

    def test_ignore_case(self, resolver):
        assert resolver.find_datacenter("LONDON", ignore_case=True).name == "London"

    def test_datacenter_targets_keeps_order_and_defaults(self, resolver):
        dc = resolver.find_datacenter("London")
        assert names(resolver.datacenter_targets(dc)) == ["solr1", "solr2"]
        assert names(resolver.datacenter_targets(dc, load_all=False)) == ["solr1"]
