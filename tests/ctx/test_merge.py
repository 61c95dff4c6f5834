"""Tests for the kubeconfig merge and swap engine."""

import pytest

from upctx.ctx.merge import (
    activate_context,
    allocate_free_name,
    contexts_deep_equal,
    merge_upbound_context,
)
from upctx.errors import ConfigIntegrityError
from upctx.kube.kubeconfig import AuthInfo, Cluster, Context, KubeConfig

BASE_CLUSTERS = {"upbound": "server1", "upbound-previous": "server2", "other": "other"}
BASE_USERS = {"upbound": "token1", "upbound-previous": "token2", "other": "other"}
SWAPPED_CLUSTERS = {"upbound": "server2", "upbound-previous": "server1", "other": "other"}
SWAPPED_USERS = {"upbound": "token2", "upbound-previous": "token1", "other": "other"}

THREE_CONTEXTS = {
    "upbound": ("namespace1", "upbound", "upbound"),
    "upbound-previous": ("namespace2", "upbound-previous", "upbound-previous"),
    "other": ("other", "other", "other"),
}
MIXED_CONTEXTS = {
    **THREE_CONTEXTS,
    "mixed1": ("mixed1", "upbound", "upbound"),
    "mixed2": ("mixed2", "upbound-previous", "upbound-previous"),
}


def _case(current, contexts, last, want_current, want_contexts, want_last,
          clusters=BASE_CLUSTERS, users=BASE_USERS, want_clusters=BASE_CLUSTERS, want_users=BASE_USERS,
          preferred="upbound"):
    return {
        "conf": {"current": current, "contexts": contexts, "clusters": clusters, "users": users},
        "last": last,
        "preferred": preferred,
        "want": {"current": want_current, "contexts": want_contexts, "clusters": want_clusters, "users": want_users},
        "want_last": want_last,
    }


ACTIVATE_CASES = {
    "upbound_and_upbound_previous": _case(
        "upbound", MIXED_CONTEXTS, "upbound-previous",
        "upbound",
        {
            "upbound-previous": ("namespace1", "upbound-previous", "upbound-previous"),
            "upbound": ("namespace2", "upbound", "upbound"),
            "other": ("other", "other", "other"),
            "mixed1": ("mixed1", "upbound-previous", "upbound-previous"),
            "mixed2": ("mixed2", "upbound", "upbound"),
        },
        "upbound-previous",
        want_clusters=SWAPPED_CLUSTERS, want_users=SWAPPED_USERS,
    ),
    "other_and_upbound_previous": _case(
        "other", MIXED_CONTEXTS, "upbound-previous",
        "upbound",
        {
            "upbound": ("namespace2", "upbound", "upbound"),
            "other": ("other", "other", "other"),
            "mixed1": ("mixed1", "upbound-previous", "upbound-previous"),
            "mixed2": ("mixed2", "upbound", "upbound"),
        },
        "other",
        want_clusters=SWAPPED_CLUSTERS, want_users=SWAPPED_USERS,
    ),
    "other_and_upbound": _case("other", THREE_CONTEXTS, "upbound", "upbound", THREE_CONTEXTS, "other"),
    "upbound_and_other": _case("upbound", THREE_CONTEXTS, "other", "other", THREE_CONTEXTS, "upbound"),
    "upbound_previous_and_upbound": _case(
        "upbound-previous", THREE_CONTEXTS, "upbound", "upbound", THREE_CONTEXTS, "upbound-previous"
    ),
    "upbound_previous_and_other": _case(
        "upbound-previous", THREE_CONTEXTS, "other", "other", THREE_CONTEXTS, "upbound-previous"
    ),
    "current_context_not_set": _case(
        "",
        {
            "upbound": ("namespace1", "upbound", "upbound"),
            "upbound-previous": ("namespace1", "upbound", "upbound"),
            "other": ("other", "other", "other"),
        },
        "upbound-previous",
        "upbound",
        {"upbound": ("namespace1", "upbound", "upbound"), "other": ("other", "other", "other")},
        "",
    ),
    "upbound_and_upbound": _case("upbound", MIXED_CONTEXTS, "upbound", "upbound", MIXED_CONTEXTS, "upbound"),
    "custom_preferred_context": _case(
        "custom",
        {
            **THREE_CONTEXTS,
            "custom": ("namespace1", "custom", "custom"),
            "custom-previous": ("namespace2", "custom-previous", "custom-previous"),
            "mixed1": ("mixed1", "custom", "custom"),
            "mixed2": ("mixed2", "custom-previous", "custom-previous"),
        },
        "custom-previous",
        "custom",
        {
            **THREE_CONTEXTS,
            "custom-previous": ("namespace1", "custom-previous", "custom-previous"),
            "custom": ("namespace2", "custom", "custom"),
            "mixed1": ("mixed1", "custom-previous", "custom-previous"),
            "mixed2": ("mixed2", "custom", "custom"),
        },
        "custom-previous",
        clusters={**BASE_CLUSTERS, "custom": "server1", "custom-previous": "server2"},
        users={**BASE_USERS, "custom": "token1", "custom-previous": "token2"},
        want_clusters={**BASE_CLUSTERS, "custom": "server2", "custom-previous": "server1"},
        want_users={**BASE_USERS, "custom": "token2", "custom-previous": "token1"},
        preferred="custom",
    ),
}


@pytest.mark.parametrize("case", ACTIVATE_CASES.values(), ids=ACTIVATE_CASES.keys())
def test_activate_context(case, make_config, summarize):
    """Test activating contexts across every current/last combination."""
    conf = make_config(**case["conf"])
    result, last = activate_context(conf, case["last"], case["preferred"])
    assert summarize(result) == case["want"]
    assert last == case["want_last"]


def test_activate_context_does_not_mutate_input(make_config, summarize):
    """Test that the input config is left untouched."""
    conf = make_config("upbound", MIXED_CONTEXTS, BASE_CLUSTERS, BASE_USERS)
    before = summarize(conf)
    activate_context(conf, "upbound-previous", "upbound")
    assert summarize(conf) == before


@pytest.mark.parametrize(
    "current,contexts,message",
    [
        (
            "upbound",
            {"upbound-previous": ("namespace1", "upbound", "upbound"), "other": ("other", "other", "other")},
            'no "upbound" context found',
        ),
        (
            "upbound",
            {"upbound": ("namespace1", "upbound", "upbound"), "other": ("other", "other", "other")},
            'no "upbound-previous" context found',
        ),
    ],
    ids=["current_not_found", "last_not_found"],
)
def test_activate_context_missing_context(current, contexts, message, make_config):
    """Test that a missing current or previous context is reported."""
    conf = make_config(current, contexts, BASE_CLUSTERS, BASE_USERS)
    with pytest.raises(ConfigIntegrityError, match=message):
        activate_context(conf, "upbound-previous", "upbound")


def test_activate_context_missing_previous_cluster(make_config):
    """Test that a canonical context pointing at a missing shadow cluster is an error."""
    conf = make_config(
        "upbound",
        THREE_CONTEXTS,
        {"upbound": "server1", "other": "other"},
        BASE_USERS,
    )
    with pytest.raises(ConfigIntegrityError, match='no "upbound-previous" cluster found'):
        activate_context(conf, "upbound-previous", "upbound")


def test_activate_context_missing_previous_auth_info(make_config):
    """Test that a canonical context pointing at a missing shadow auth-info is an error."""
    conf = make_config(
        "upbound",
        THREE_CONTEXTS,
        BASE_CLUSTERS,
        {"upbound": "token1", "other": "other"},
    )
    with pytest.raises(ConfigIntegrityError, match='no "upbound-previous" authInfo found'):
        activate_context(conf, "upbound-previous", "upbound")


def test_activate_previous_already_current(make_config, summarize):
    """Test that activating the already current shadow context changes nothing."""
    conf = make_config("upbound-previous", THREE_CONTEXTS, BASE_CLUSTERS, BASE_USERS)
    result, last = activate_context(conf, "upbound-previous", "upbound")
    assert summarize(result) == summarize(conf)
    assert last == "upbound-previous"


def test_allocate_free_name():
    """Test that the lowest unused numbered suffix is chosen."""
    assert allocate_free_name("upbound-previous", []) == "upbound-previous1"
    assert allocate_free_name("upbound-previous", ["upbound-previous1", "upbound-previous3"]) == "upbound-previous2"


def _space_config(server="https://ingress", token="token-new", namespace="group1"):
    return KubeConfig(
        current_context="upbound",
        contexts={"upbound": Context(cluster="upbound", auth_info="upbound", namespace=namespace)},
        clusters={"upbound": Cluster(server=server)},
        auth_infos={"upbound": AuthInfo(token=token)},
    )


def test_merge_into_empty_config(summarize):
    """Test merging into an empty kubeconfig creates the canonical entries."""
    result, last = merge_upbound_context(KubeConfig(), _space_config(), "upbound", "upbound")
    assert summarize(result) == {
        "current": "upbound",
        "contexts": {"upbound": ("group1", "upbound", "upbound")},
        "clusters": {"upbound": "https://ingress"},
        "users": {"upbound": "token-new"},
    }
    assert last == ""


def test_merge_from_other_context(make_config, summarize):
    """Test merging while an unrelated context is current keeps it as the previous context."""
    dest = make_config("other", {"other": ("other", "other", "other")}, {"other": "other"}, {"other": "other"})
    result, last = merge_upbound_context(dest, _space_config(), "upbound", "upbound")
    assert last == "other"
    assert summarize(result) == {
        "current": "upbound",
        "contexts": {"other": ("other", "other", "other"), "upbound": ("group1", "upbound", "upbound")},
        "clusters": {"other": "other", "upbound": "https://ingress"},
        "users": {"other": "other", "upbound": "token-new"},
    }


def test_merge_group_into_cloud_canonical_context(make_config, summarize):
    """Test merging a group while the canonical context is current keeps the old one as previous."""
    dest = make_config(
        "upbound",
        {"upbound": (None, "upbound", "upbound"), "other": ("other", "other", "other")},
        {"upbound": "https://acme.space", "other": "other"},
        {"upbound": "token-old", "other": "other"},
    )
    result, last = merge_upbound_context(
        dest, _space_config(server="https://acme.space", namespace="teamA"), "upbound", "upbound"
    )
    assert last == "upbound-previous"
    assert summarize(result) == {
        "current": "upbound",
        "contexts": {
            "upbound": ("teamA", "upbound", "upbound"),
            "upbound-previous": (None, "upbound-previous", "upbound-previous"),
            "other": ("other", "other", "other"),
        },
        "clusters": {"upbound": "https://acme.space", "upbound-previous": "https://acme.space", "other": "other"},
        "users": {"upbound": "token-new", "upbound-previous": "token-old", "other": "other"},
    }


def test_merge_moves_shared_previous_cluster(make_config, summarize):
    """Test that a -previous cluster used by other contexts moves to a numbered name."""
    dest = make_config(
        "upbound",
        {
            "upbound": ("ns", "upbound", "upbound"),
            "upbound-previous": ("ns", "upbound-previous", "upbound-previous"),
            "stray": ("stray", "upbound-previous", "upbound-previous"),
        },
        {"upbound": "server1", "upbound-previous": "server2", "upbound-previous1": "taken"},
        {"upbound": "token1", "upbound-previous": "token2"},
    )
    result, _ = merge_upbound_context(dest, _space_config(), "upbound", "upbound")
    summary = summarize(result)

    assert summary["contexts"]["stray"] == ("stray", "upbound-previous2", "upbound-previous1")
    assert summary["clusters"]["upbound-previous2"] == "server2"
    assert summary["clusters"]["upbound-previous1"] == "taken"
    assert summary["users"]["upbound-previous1"] == "token2"
    users_of_previous = [name for name, ctx in summary["contexts"].items() if ctx[1] == "upbound-previous"]
    assert users_of_previous == ["upbound-previous"]
    assert summary["clusters"]["upbound"] == "https://ingress"
    assert summary["clusters"]["upbound-previous"] == "server1"


def test_merge_when_previous_is_current(make_config, summarize):
    """Test merging while the shadow context is current."""
    dest = make_config(
        "upbound-previous",
        {"upbound-previous": ("ns2", "upbound-previous", "upbound-previous")},
        {"upbound-previous": "server2"},
        {"upbound-previous": "token2"},
    )
    result, last = merge_upbound_context(dest, _space_config(), "upbound", "upbound")
    assert last == "upbound-previous"
    assert summarize(result) == {
        "current": "upbound",
        "contexts": {
            "upbound": ("group1", "upbound", "upbound"),
            "upbound-previous": ("ns2", "upbound-previous1", "upbound-previous1"),
        },
        "clusters": {"upbound": "https://ingress", "upbound-previous1": "server2"},
        "users": {"upbound": "token-new", "upbound-previous1": "token2"},
    }


def test_swap_back_after_merge_when_previous_is_current(make_config):
    """Test that the target current before the merge can be swapped back in."""
    dest = make_config(
        "upbound-previous",
        {"upbound-previous": ("ns2", "upbound-previous", "upbound-previous")},
        {"upbound-previous": "server2"},
        {"upbound-previous": "token2"},
    )
    merged, last = merge_upbound_context(dest, _space_config(), "upbound", "upbound")

    restored, _ = activate_context(merged, last, "upbound")
    context = restored.contexts[restored.current_context]
    assert context.namespace == "ns2"
    assert restored.clusters[context.cluster].server == "server2"
    assert restored.auth_infos[context.auth_info].token == "token2"


def test_merge_when_previous_is_current_but_missing(make_config):
    """Test that a dangling current-context on the shadow name is rejected."""
    dest = make_config("upbound-previous", {}, {}, {})
    with pytest.raises(ConfigIntegrityError, match='no "upbound-previous" context found'):
        merge_upbound_context(dest, _space_config(), "upbound", "upbound")


def test_merge_without_auth_info(summarize):
    """Test that a source context without credentials is merged without a user."""
    src = _space_config()
    src.contexts["upbound"].auth_info = ""
    src.auth_infos.clear()
    result, _ = merge_upbound_context(KubeConfig(), src, "upbound", "upbound")
    assert summarize(result)["contexts"]["upbound"] == ("group1", "upbound", "")
    assert result.auth_infos == {}


@pytest.mark.parametrize(
    "mutate,message",
    [
        (lambda src: src.contexts.clear(), 'context "upbound" not found in kubeconfig'),
        (lambda src: src.clusters.clear(), 'cluster "upbound" not found in kubeconfig'),
    ],
    ids=["missing_context", "missing_cluster"],
)
def test_merge_missing_source_entries(mutate, message):
    """Test that an incomplete source kubeconfig is rejected."""
    src = _space_config()
    mutate(src)
    with pytest.raises(ConfigIntegrityError, match=message):
        merge_upbound_context(KubeConfig(), src, "upbound", "upbound")


def test_merge_keeps_unrelated_entries(make_config):
    """Test that unrelated entries survive a merge unchanged."""
    dest = make_config(
        "other",
        {"other": ("other", "other", "other"), "kind": ("default", "kind", "kind")},
        {"other": "other", "kind": "https://127.0.0.1:6443"},
        {"other": "other", "kind": "kind-token"},
    )
    result, _ = merge_upbound_context(dest, _space_config(), "upbound", "upbound")
    for name in ("other", "kind"):
        assert result.contexts[name] == dest.contexts[name]
        assert result.clusters[name] == dest.clusters[name]
        assert result.auth_infos[name] == dest.auth_infos[name]


def test_merge_same_target_twice_is_equal():
    """Test that re-merging the same target is detected as structurally equal."""
    first, _ = merge_upbound_context(KubeConfig(), _space_config(), "upbound", "upbound")
    second, last = merge_upbound_context(first, _space_config(), "upbound", "upbound")
    assert last == "upbound-previous"
    assert contexts_deep_equal(second, last, second.current_context)


def test_contexts_deep_equal():
    """Test structural equality of contexts."""
    conf = KubeConfig(
        contexts={
            "a": Context(cluster="c1", auth_info="u1", namespace="ns"),
            "b": Context(cluster="c2", auth_info="u2", namespace="ns"),
            "c": Context(cluster="c2", auth_info="u2", namespace="other"),
            "d": Context(cluster="c3", auth_info="u2", namespace="ns"),
        },
        clusters={"c1": Cluster(server="s"), "c2": Cluster(server="s"), "c3": Cluster(server="t")},
        auth_infos={"u1": AuthInfo(token="t"), "u2": AuthInfo(token="t")},
    )
    assert contexts_deep_equal(conf, "a", "a")
    assert contexts_deep_equal(conf, "a", "b")
    assert not contexts_deep_equal(conf, "a", "c")
    assert not contexts_deep_equal(conf, "a", "d")
    assert not contexts_deep_equal(conf, "", "a")
    assert not contexts_deep_equal(conf, "a", "missing")
    assert contexts_deep_equal(conf, "missing1", "missing2")


def test_activate_then_swap_round_trip(make_config, summarize):
    """Test that activating A, then B, then swapping gives back A."""
    dest = make_config("other", {"other": ("other", "other", "other")}, {"other": "other"}, {"other": "other"})
    after_a, _ = merge_upbound_context(dest, _space_config(server="https://a.space", token="token-a"), "upbound", "upbound")
    after_b, last = merge_upbound_context(
        after_a, _space_config(server="https://b.space", token="token-b", namespace="teamB"), "upbound", "upbound"
    )
    swapped, _ = activate_context(after_b, last, "upbound")

    canonical = summarize(swapped)
    assert canonical["current"] == "upbound"
    assert canonical["contexts"]["upbound"] == ("group1", "upbound", "upbound")
    assert canonical["clusters"]["upbound"] == "https://a.space"
    assert canonical["users"]["upbound"] == "token-a"
    assert canonical["contexts"]["other"] == summarize(after_a)["contexts"]["other"]
