from typing import Dict, Optional
from web3 import Web3
from .config import ENV, ChainName
from dotenv import load_dotenv
import os


load_dotenv()


def get_providers() -> Dict[ChainName, Optional[str]]:
    api_key = os.getenv(ENV.ALCHEMY_API_KEY, "")
    providers: Dict[ChainName, Optional[str]] = {}

    for chain in ChainName:
        rpc_url = os.getenv(ENV[f"{chain.name}_RPC_URL"])
        providers[chain] = rpc_url + api_key if rpc_url else None

    return providers


def get_web3(chain_name: ChainName) -> Web3:
    providers = get_providers()

    if chain_name not in providers:
        raise ValueError(f"Unknown chain: {chain_name}")

    rpc_url = providers[chain_name]

    if rpc_url is None:
        raise ValueError(
            f"Store `{chain_name.name}_RPC_URL` in .env to connect to {chain_name}"
        )

    w3 = Web3(Web3.HTTPProvider(rpc_url))

    return w3
