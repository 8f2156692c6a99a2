from decimal import Decimal

import pytest

from conftest import fail, ok
from cyberfly_sdk.events import FINISHED, STARTED, LocalEventBus
from cyberfly_sdk.ledger.client import NodeLedger
from cyberfly_sdk.ledger.outcome import TxStatus

PEER = "04b754ba2a3da0970d72d08b8740fb2ad96e63cf8f8bef6b7f1ab84e5b09a7f8"
ADDR = f"{PEER}@203.0.113.7:31001"

NODE_ROW = {
    "peer_id": PEER,
    "status": "active",
    "multiaddr": ADDR,
    "account": "k:" + PEER,
    "registered_at": {"time": "2024-05-01T10:00:00Z"},
    "last_active": {"timep": "2024-06-01T10:00:00.123456Z"},
}


def _cap_names(cmd):
    return [c["name"] for c in cmd["signers"][0].get("clist", [])]


# --- reads ---------------------------------------------------------------------


def test_get_node_info_parses_row(ledger, fake):
    fake.local_results["get-node"] = ok(NODE_ROW)
    res = ledger.get_node_info(PEER)
    assert res.ok
    assert res.view.is_active
    assert res.view.multiaddr == ADDR
    assert res.view.register_date.year == 2024
    assert res.view.last_active_date.microsecond == 123456
    assert fake.locals == [f'(free.cyberfly_node.get-node "{PEER}")']


def test_get_node_info_absent(ledger, fake):
    res = ledger.get_node_info(PEER)
    assert res.view is None
    assert res.outcome.row_not_found


def test_get_node_info_unexpected_shape(ledger, fake):
    fake.local_results["get-node"] = ok("not a row")
    res = ledger.get_node_info(PEER)
    assert res.outcome.status is TxStatus.FAILURE
    assert res.view is None


def test_get_node_stake(ledger, fake):
    fake.local_results["get-node-stake"] = ok(
        {"account": "k:" + PEER, "active": True, "amount": {"decimal": "50000.0"}, "stake_time": {"time": "2024-01-01T00:00:00Z"}}
    )
    view = ledger.get_node_stake(PEER).view
    assert view.active is True
    assert view.amount == Decimal("50000.0")


def test_calculate_rewards_and_apy(ledger, fake):
    fake.local_results["calculate-days-and-reward"] = ok({"days": {"int": 12}, "reward": {"decimal": "3.25"}})
    fake.local_results["calculate-apy"] = ok(18.5)
    rewards = ledger.calculate_rewards(PEER).view
    assert rewards.days == 12
    assert rewards.reward == Decimal("3.25")
    assert rewards.has_claimable
    assert ledger.get_apy().view == Decimal("18.5")


def test_stake_stats(ledger, fake):
    fake.local_results["get-stakes-stats"] = ok({"total_stakes": {"int": 4}, "total_staked_amount": 200000.0})
    stats = ledger.get_stake_stats().view
    assert stats.total_stakes == 4
    assert stats.total_staked_amount == Decimal("200000.0")


def test_balance_variants(ledger, fake):
    fake.local_results["get-balance"] = ok({"decimal": "12.000000000001"})
    assert ledger.get_balance("k:" + PEER).view == Decimal("12.000000000001")
    fake.local_results["get-balance"] = ok("lots")
    res = ledger.get_balance("k:" + PEER)
    assert res.ok and res.view is None
    del fake.local_results["get-balance"]
    res = ledger.get_balance("k:" + PEER)
    assert res.ok and res.view == 0


def test_read_failure_is_reported(ledger, fake):
    fake.local_results["get-balance"] = fail("Gas limit (1000) exceeded")
    res = ledger.get_balance("k:" + PEER)
    assert res.outcome.status is TxStatus.FAILURE
    assert res.view is None


# --- registration ----------------------------------------------------------------


def test_ensure_registered_creates_on_row_not_found(ledger, fake, identity, sleeps):
    fake.local_results["get-node"] = lambda cmd: ok(NODE_ROW) if fake.sent else fail("with-read: row not found: " + PEER)
    result = ledger.ensure_registered(PEER, ADDR)
    assert result.action == "created"
    assert result.outcome.ok
    assert result.view.is_active
    assert len(fake.sent) == 1
    cmd = fake.sent[0]
    assert cmd["payload"]["exec"]["code"] == (
        f'(free.cyberfly_node.new-node "{PEER}" "active" "{ADDR}" "{identity.account_id}" (read-keyset "ks"))'
    )
    assert cmd["payload"]["exec"]["data"] == {"ks": {"pred": "keys-all", "keys": [identity.public_key_hex]}}
    assert _cap_names(cmd) == ["free.cyberfly-account-gas-station.GAS_PAYER", "free.cyberfly_node.NEW_NODE"]
    assert cmd["signers"][0]["clist"][0]["args"] == ["cyberfly-account-gas", {"int": 1}, 1.0]
    assert sleeps == [2.0]


def test_ensure_registered_activates_inactive(ledger, fake):
    inactive = dict(NODE_ROW, status="inactive")
    fake.local_results["get-node"] = lambda cmd: ok(NODE_ROW) if fake.sent else ok(inactive)
    result = ledger.ensure_registered(PEER, ADDR)
    assert result.action == "activated"
    assert fake.sent_codes() == [f'(free.cyberfly_node.update-node "{PEER}" "{ADDR}" "active")']
    assert _cap_names(fake.sent[0])[1] == "free.cyberfly_node.NODE_GUARD"
    assert fake.sent[0]["signers"][0]["clist"][1]["args"] == [PEER]


def test_ensure_registered_noop_when_active(ledger, fake):
    fake.local_results["get-node"] = ok(NODE_ROW)
    result = ledger.ensure_registered(PEER, ADDR)
    assert result.action == "active"
    assert result.outcome.ok
    assert fake.sent == []


def test_ensure_registered_reports_other_read_failures(ledger, fake):
    fake.local_results["get-node"] = fail("Gas limit (1000) exceeded")
    result = ledger.ensure_registered(PEER, ADDR)
    assert result.action == "none"
    assert result.outcome.status is TxStatus.FAILURE
    assert fake.sent == []


def test_create_fails_without_identity(config, http, fake):
    result = NodeLedger(config, http=http).create_node(PEER, ADDR)
    assert result.outcome.status is TxStatus.INVALID
    assert fake.sent == []


def test_mutation_failure_reports_none(ledger, fake):
    fake.poll_result = fail("Keyset failure (keys-all)")
    result = ledger.create_node(PEER, ADDR)
    assert result.action == "none"
    assert result.outcome.error == "Keyset failure (keys-all)"
    assert result.view is None


# --- rewards -----------------------------------------------------------------------


@pytest.mark.parametrize("reward", [0, {"decimal": "0.0"}, -1.5, {"int": 0}])
def test_claim_skipped_when_nothing_to_claim(ledger, fake, reward):
    fake.local_results["calculate-days-and-reward"] = ok({"days": 3, "reward": reward})
    result = ledger.claim_reward(PEER)
    assert result.action == "skipped"
    assert result.outcome.ok
    assert fake.sent == []


def test_claim_positive_reward_submits_once(ledger, fake, identity):
    fake.local_results["calculate-days-and-reward"] = lambda cmd: ok(
        {"days": 3, "reward": 0.0 if fake.sent else {"decimal": "1.75"}}
    )
    result = ledger.claim_reward(PEER)
    assert result.action == "claimed"
    assert result.outcome.ok
    assert fake.sent_codes() == [f'(free.cyberfly_node.claim-reward "{identity.account_id}" "{PEER}")']
    assert _cap_names(fake.sent[0]) == ["free.cyberfly-account-gas-station.GAS_PAYER", "free.cyberfly_node.NODE_GUARD"]
    assert result.view.reward == 0


@pytest.mark.parametrize("reward", ["1.5", None, True, {"value": 2}])
def test_claim_unparsable_reward_is_invalid(ledger, fake, reward):
    fake.local_results["calculate-days-and-reward"] = ok({"days": 3, "reward": reward})
    result = ledger.claim_reward(PEER)
    assert result.outcome.status is TxStatus.INVALID
    assert fake.sent == []


def test_claim_reward_read_failure(ledger, fake):
    result = ledger.claim_reward(PEER)
    assert result.action == "none"
    assert result.outcome.row_not_found
    assert fake.sent == []


# --- staking -----------------------------------------------------------------------


def test_stake_insufficient_balance(ledger, fake):
    fake.local_results["get-balance"] = ok(10.0)
    result = ledger.stake(PEER)
    assert result.outcome.status is TxStatus.INVALID
    assert "insufficient" in result.outcome.error
    assert fake.sent == []


@pytest.mark.parametrize("balance", [ok("plenty"), None])
def test_stake_fails_closed(ledger, fake, balance):
    if balance is not None:
        fake.local_results["get-balance"] = balance
    result = ledger.stake(PEER)
    assert result.outcome.status is TxStatus.INVALID
    assert fake.sent == []


def test_stake_submits_transfer_capability(ledger, fake, identity):
    fake.local_results["get-balance"] = ok({"decimal": "60000.5"})
    fake.local_results["get-node-stake"] = ok({"account": identity.account_id, "active": True, "amount": 50000.0})
    result = ledger.stake(PEER)
    assert result.action == "staked"
    assert result.view.active
    cmd = fake.sent[0]
    assert cmd["payload"]["exec"]["code"] == f'(free.cyberfly_node.stake "{identity.account_id}" "{PEER}")'
    clist = cmd["signers"][0]["clist"]
    assert clist[1] == {"name": "free.cyberfly_node.ACCOUNT_AUTH", "args": [identity.account_id]}
    assert clist[2] == {
        "name": "free.cyberfly.TRANSFER",
        "args": [identity.account_id, "cyberfly-staking-bank", {"decimal": "50000"}],
    }


def test_unstake(ledger, fake, identity):
    result = ledger.unstake(PEER)
    assert result.action == "unstaked"
    assert fake.sent_codes() == [f'(free.cyberfly_node.unstake "{identity.account_id}" "{PEER}")']


# --- transfers -----------------------------------------------------------------------


RECIPIENT = "k:" + "ab" * 32


def test_transfer_builds_transfer_create(ledger, fake, identity):
    fake.local_results["get-balance"] = ok(7.5)
    result = ledger.transfer(RECIPIENT, "2.5")
    assert result.action == "transferred"
    assert result.view == Decimal("7.5")
    cmd = fake.sent[0]
    assert cmd["payload"]["exec"]["code"] == (
        f'(free.cyberfly.transfer-create "{identity.account_id}" "{RECIPIENT}" (read-keyset "ks") 2.5)'
    )
    assert cmd["payload"]["exec"]["data"] == {"ks": {"pred": "keys-all", "keys": ["ab" * 32]}}
    assert cmd["signers"][0]["clist"][1] == {
        "name": "free.cyberfly.TRANSFER",
        "args": [identity.account_id, RECIPIENT, {"decimal": "2.5"}],
    }


@pytest.mark.parametrize(
    "to, amount",
    [
        ("alice", "1"),
        ("k:" + "AB" * 32, "1"),
        (RECIPIENT, "0"),
        (RECIPIENT, "-3"),
        (RECIPIENT, "abc"),
        (RECIPIENT, "NaN"),
    ],
)
def test_transfer_rejects_bad_input(ledger, fake, to, amount):
    result = ledger.transfer(to, amount)
    assert result.outcome.status is TxStatus.INVALID
    assert fake.sent == []


def test_transfer_to_self_is_invalid(ledger, fake, identity):
    assert ledger.transfer(identity.account_id, 1).outcome.status is TxStatus.INVALID


# --- events ------------------------------------------------------------------------


def test_operations_publish_events(config, http, identity, fake):
    bus = LocalEventBus()
    seen = []
    bus.subscribe(STARTED, lambda topic, payload: seen.append((topic, payload)))
    bus.subscribe(FINISHED, lambda topic, payload: seen.append((topic, payload)))
    ledger = NodeLedger(config, identity=identity, http=http, bus=bus, sleep=lambda s: None)
    fake.local_results["calculate-days-and-reward"] = ok({"days": 1, "reward": 0})
    ledger.claim_reward(PEER)
    assert [t for t, _ in seen] == [STARTED, FINISHED]
    assert seen[0][1]["operation"] == "claim_reward"
    assert seen[1][1]["status"] == "success"
    assert seen[1][1]["action"] == "skipped"


# --- unencodable input -------------------------------------------------------------

BAD_PEER = "peer\x01"


@pytest.mark.parametrize(
    "op",
    [
        lambda lg: lg.get_node_info(BAD_PEER),
        lambda lg: lg.get_node_stake(BAD_PEER),
        lambda lg: lg.calculate_rewards(BAD_PEER),
        lambda lg: lg.get_balance("k:\x01"),
    ],
)
def test_reads_with_control_characters_are_invalid(ledger, fake, op):
    result = op(ledger)
    assert result.outcome.status is TxStatus.INVALID
    assert result.view is None
    assert fake.locals == []


@pytest.mark.parametrize(
    "op",
    [
        lambda lg: lg.ensure_registered(BAD_PEER, ADDR),
        lambda lg: lg.create_node(BAD_PEER, ADDR),
        lambda lg: lg.activate_node(PEER, "addr\x01"),
        lambda lg: lg.claim_reward(BAD_PEER),
        lambda lg: lg.unstake(BAD_PEER),
    ],
)
def test_mutations_with_control_characters_are_invalid(ledger, fake, op):
    result = op(ledger)
    assert result.action == "none"
    assert result.outcome.status is TxStatus.INVALID
    assert fake.sent == []


def test_stake_with_control_characters_is_invalid(ledger, fake):
    fake.local_results["get-balance"] = ok(100000)
    result = ledger.stake(BAD_PEER)
    assert result.outcome.status is TxStatus.INVALID
    assert fake.sent == []


def test_invalid_input_still_publishes_finished(config, http, identity, fake):
    bus = LocalEventBus()
    seen = []
    bus.subscribe(STARTED, lambda topic, payload: seen.append(topic))
    bus.subscribe(FINISHED, lambda topic, payload: seen.append(topic))
    ledger = NodeLedger(config, identity=identity, http=http, bus=bus, sleep=lambda s: None)
    ledger.ensure_registered(BAD_PEER, ADDR)
    ledger.claim_reward(BAD_PEER)
    assert seen == [STARTED, FINISHED, STARTED, FINISHED]


def test_finished_published_when_operation_raises(config, http, identity, fake, monkeypatch):
    bus = LocalEventBus()
    seen = []
    bus.subscribe(FINISHED, lambda topic, payload: seen.append(payload))
    ledger = NodeLedger(config, identity=identity, http=http, bus=bus, sleep=lambda s: None)

    def boom(peer_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(ledger, "calculate_rewards", boom)
    with pytest.raises(RuntimeError):
        ledger.claim_reward(PEER)
    assert seen[0]["operation"] == "claim_reward"
    assert seen[0]["status"] == "error"
