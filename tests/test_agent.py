"""Tests for the relay queue processing (uses mocks since we need a chain)."""

import time
from unittest.mock import MagicMock

from eth_account import Account
from web3.exceptions import ContractLogicError

from u3r.codec import sign_intent
from u3r.config import Config
from u3r.main import RelayerAgent
from u3r.types import SwapIntent


DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
WETH9 = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
POOL = "0x0000000000000000000000000000000000003000"


def _queue_swap(agent: RelayerAgent, deadline: int | None = None):
    acct = Account.create()
    intent = SwapIntent(
        amount_specified=4000 * 10**18,
        limit_amount=2 * 10**18,
        deadline=deadline if deadline is not None else int(time.time()) + 3600,
        nonce=0,
        pool=POOL,
        token_in=WETH9,
        token_out=DAI,
        recipient=acct.address,
        fee=3000,
        exact_in=False,
    )
    signed = sign_intent(intent, acct.key.hex())
    agent.collector.pending_swaps.append((signed, intent))
    return signed


def _make_agent():
    agent = RelayerAgent(Config(u3r_address="0x0000000000000000000000000000000000001234"))
    agent._submitter = MagicMock()
    return agent


def test_process_queue_relays_pending():
    agent = _make_agent()
    _queue_swap(agent)
    agent._submitter.simulate.return_value = 999
    agent._submitter.submit.return_value = "0xfeed"

    assert agent.process_queue() == ["0xfeed"]
    status = agent.collector.get_status()
    assert status.pending_swaps == 0
    assert status.relayed == 1
    assert agent.collector.relay_history[0]["amount"] == "999"


def test_process_queue_empty():
    agent = _make_agent()
    assert agent.process_queue() == []
    agent._submitter.submit.assert_not_called()


def test_revert_is_dropped():
    agent = _make_agent()
    _queue_swap(agent)
    agent._submitter.simulate.side_effect = ContractLogicError("execution reverted: nonce")

    assert agent.process_queue() == []
    status = agent.collector.get_status()
    assert status.pending_swaps == 0
    assert status.failed == 1


def test_transport_error_requeues():
    agent = _make_agent()
    _queue_swap(agent)
    agent._submitter.simulate.side_effect = ConnectionError("rpc down")

    assert agent.process_queue() == []
    assert agent.collector.get_status().pending_swaps == 1


def test_expired_swap_is_dropped():
    agent = _make_agent()
    _queue_swap(agent, deadline=1)

    assert agent.process_queue() == []
    agent._submitter.simulate.assert_not_called()
    assert agent.collector.get_status().failed == 1
