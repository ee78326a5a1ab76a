"""On-chain addresses and protocol constants for the CLO exchange."""

from typing import TypedDict


class ShareClassEntry(TypedDict):
    name: str
    address: str


MODULE_ADDRESS = "0xc09d9f882bcd2a8f109d806eae6aa3e1d8f630b18a196142bf6d9b2a4292b092"
MODULE_NAME = "mock_clo_exchange"
ADMIN_ADDRESS = "0xc09d9f882bcd2a8f109d806eae6aa3e1d8f630b18a196142bf6d9b2a4292b092"

USDC_METADATA = "0xbae207659db88bea0cbead6da0ed00aac12edcdda169e591cd41c94180b46f3b"

SHARE_CLASSES: list[ShareClassEntry] = [
    {
        "name": "TIB2",
        "address": "0x95262b5eed8051a286ae7f3f86cc6db07c152da2806ccff31df5a475c500b591",
    },
    {
        "name": "BSFG325",
        "address": "0xcca9bd387945b1daf7bb6cc6d68796318036ccc109be0ca31f6ae6d9c898d89e",
    },
    {
        "name": "RODA1",
        "address": "0xdbad8fb3e984a1bf2253eb5621a9e8371e3e52bcd4f54500e8a4059b6053198e",
    },
]

# Entry and view function names on the exchange module
CREATE_SHARE_CLASS = "create_share_class"
REQUEST_ISSUANCE = "request_issuance"
REQUEST_REDEMPTION = "request_redemption"
UPDATE_PRICE_PER_SHARE = "update_price_per_share"
EXCHANGE_PRICE = "exchange_price"

ADDRESS_PREFIX = "0x"

# On-chain prices are stored as 1000x the display price per share
PRICE_SCALE = 1000

USDC_DECIMALS = 6
SHARE_DECIMALS = 6
DEFAULT_ASSET_DECIMALS = 8
DISPLAY_PRECISION = 6
PRICE_PRECISION = 3

APTOS_COIN = "0x1::aptos_coin::AptosCoin"
APTOS_COIN_STORE = f"0x1::coin::CoinStore<{APTOS_COIN}>"
APTOS_DECIMALS = 8

# Wallet rejection codes (EIP-1193 style, as used by Petra)
WALLET_USER_REJECTED = 4001
WALLET_UNSUPPORTED_METHOD = 4100

DEFAULT_MAINNET_NODE_URL = "https://api.mainnet.aptoslabs.com/v1"
DEFAULT_TESTNET_NODE_URL = "https://api.testnet.aptoslabs.com/v1"
DEFAULT_DEVNET_NODE_URL = "https://api.devnet.aptoslabs.com/v1"

DEFAULT_MAINNET_INDEXER_URL = "https://api.mainnet.aptoslabs.com/v1/graphql"
DEFAULT_TESTNET_INDEXER_URL = "https://api.testnet.aptoslabs.com/v1/graphql"
DEFAULT_DEVNET_INDEXER_URL = "https://api.devnet.aptoslabs.com/v1/graphql"

RETRYABLE_HTTP_STATUSES = frozenset({429, 500, 502, 503, 504})
