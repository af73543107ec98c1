"""Chain session: one web3 connection plus the U3R contract handle."""

import logging

from web3 import Web3

from .abi import ERC20_APPROVE_ABI, POOL_SLOT0_ABI, load_abi
from .config import Config
from .errors import RelayError, SessionError
from .types import Slot0

logger = logging.getLogger(__name__)


class RelaySession:
    """Explicit connection context passed to every chain operation.

    Owned by the caller: nothing is read from module globals, and a session
    must be connected before any chain state is touched.
    """

    def __init__(self, config: Config, w3: Web3 | None = None):
        self.config = config
        self._w3 = w3
        self._u3r = None

    def connect(self) -> "RelaySession":
        if self._w3 is None:
            self._w3 = Web3(Web3.HTTPProvider(self.config.rpc_url))
        if not self._w3.is_connected():
            self._w3 = None
            raise SessionError(f"Cannot connect to {self.config.rpc_url}")
        if not self.config.u3r_address:
            raise SessionError("U3R_ADDRESS is not configured")

        self._u3r = self._w3.eth.contract(
            address=Web3.to_checksum_address(self.config.u3r_address),
            abi=load_abi("uniV3Relayed", self.config.artifacts_dir),
        )
        logger.info(f"Connected to chain {self._w3.eth.chain_id} (U3R at {self.config.u3r_address})")
        return self

    def disconnect(self):
        self._u3r = None
        self._w3 = None

    @property
    def connected(self) -> bool:
        return self._u3r is not None

    def __enter__(self) -> "RelaySession":
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()

    @property
    def w3(self) -> Web3:
        if self._w3 is None or self._u3r is None:
            raise SessionError("Session is not connected")
        return self._w3

    @property
    def u3r(self):
        if self._u3r is None:
            raise SessionError("Session is not connected")
        return self._u3r

    def nonce_of(self, signer: str) -> int:
        """Current U3R nonce of a signer. Advisory: it may change before relay."""
        return self.u3r.functions.nonces(Web3.to_checksum_address(signer)).call()

    def gas_tank_address(self) -> str:
        return self.u3r.functions.gasTank().call()

    def read_slot0(self, pool: str) -> Slot0:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(pool), abi=POOL_SLOT0_ABI)
        data = contract.functions.slot0().call()
        return Slot0(sqrt_price_x96=data[0], tick=data[1])

    def onchain_quote(
        self, token_in: str, token_out: str, fee: int, amount_in: int, amount_out: int
    ) -> int:
        """Counter amount estimated by the U3R contract's quoting function."""
        return self.u3r.functions.getQuote(
            Web3.to_checksum_address(token_in),
            Web3.to_checksum_address(token_out),
            fee,
            amount_in,
            amount_out,
        ).call()

    def _send(self, private_key: str, fn, value: int = 0) -> str:
        account = self.w3.eth.account.from_key(private_key)
        tx = fn.build_transaction({
            "from": account.address,
            "value": value,
            "nonce": self.w3.eth.get_transaction_count(account.address),
            "gasPrice": self.w3.eth.gas_price,
        })
        signed_tx = self.w3.eth.account.sign_transaction(tx, private_key)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)

        if receipt["status"] != 1:
            raise RelayError(f"Transaction failed: {tx_hash.hex()}", tx_hash.hex())

        return tx_hash.hex()

    def deposit_gas(self, private_key: str, value: int) -> str:
        """Fund the gas tank; required for swaps from ETH, which cannot be approved."""
        tank = self.w3.eth.contract(
            address=self.gas_tank_address(),
            abi=load_abi("U3RGasTank", self.config.artifacts_dir),
        )
        tx_hash = self._send(private_key, tank.functions.deposit(), value=value)
        logger.info(f"Deposited {value} wei to gas tank: tx={tx_hash}")
        return tx_hash

    def approve(self, token: str, private_key: str, amount: int) -> str:
        """Approve U3R to spend `amount` of an ERC-20 token."""
        erc20 = self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_APPROVE_ABI)
        tx_hash = self._send(private_key, erc20.functions.approve(self.u3r.address, amount))
        logger.info(f"Approved {amount} of {token} for U3R: tx={tx_hash}")
        return tx_hash
