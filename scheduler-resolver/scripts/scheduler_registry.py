"""Method signatures, return types and subgraph queries for Opium schedulers.

Selectors are derived at call time by abi_codec so nothing is hashed on import.
"""

from __future__ import annotations

SUBGRAPH_AUTHOR = "opiumprotocol"
DEFAULT_SUBGRAPH_BASE_URL = "https://api.thegraph.com/subgraphs/name"

PAGE_LIMIT = 100
BATCH_SIZE = 5

# Pool (staking) reads.
DERIVATIVE_SIGNATURE = "derivative()"
# (margin, endTime, params, oracleId, token); only endTime (maturity) is used.
DERIVATIVE_RETURNS = ["(uint256,uint256,address,address,address)"]
DERIVATIVE_MATURITY_INDEX = 1
EPOCH_SIGNATURE = "EPOCH()"
STAKING_PHASE_SIGNATURE = "STAKING_PHASE()"
TIME_DELTA_SIGNATURE = "TIME_DELTA()"
UNDERLYING_SIGNATURE = "underlying()"
BALANCE_OF_SIGNATURE = "balanceOf(address)"
ALLOWANCE_SIGNATURE = "allowance(address,address)"

UINT256_RETURNS = ["uint256"]
ADDRESS_RETURNS = ["address"]

# Scheduler reads and writes.
RESERVE_COEFFICIENT_SIGNATURE = "getReserveCoefficient(address)"
EXECUTE_SIGNATURE = "execute(address,address)"
AGGREGATE_SIGNATURE = "aggregate((address,bytes)[])"

DEPOSITS_ENTITY = "deposits"
WITHDRAWALS_ENTITY = "withdrawals"

DEPOSITS_QUERY_TEMPLATE = """
{{
  deposits(where: {{ scheduled_gt: 0 }}, first: {first}, skip: {skip}) {{
    user
    pool
    scheduled
  }}
}}
"""

WITHDRAWALS_QUERY_TEMPLATE = """
{{
  withdrawals(where: {{ scheduled: true }}, first: {first}, skip: {skip}) {{
    user
    pool
  }}
}}
"""
