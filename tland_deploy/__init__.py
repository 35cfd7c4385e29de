"""
TerraLand Deploy: deployment pipeline for the TerraLand (TLAND) contracts.

Stores contract bytecode, instantiates the token, vesting, staking and
airdrop contracts, registers beneficiaries in size-limited batches and
seeds the Terraswap liquidity pool.
"""

__version__ = "0.1.0"
__author__ = "TerraLand"
__url__ = "https://terraland.io"
