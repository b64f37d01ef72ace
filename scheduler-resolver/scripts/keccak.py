"""Keccak-256 with the original (pre-SHA3) padding, as Ethereum uses it.

Round constants and rotation offsets are derived at import from their
defining recurrences instead of being listed.
"""

from __future__ import annotations

_LANE_MASK = (1 << 64) - 1
_RATE = 136  # bytes absorbed per block for a 256-bit digest
_ROUNDS = 24


def _lfsr_bits() -> list[int]:
    """Output sequence of the LFSR x^8 + x^6 + x^5 + x^4 + 1."""
    bits: list[int] = []
    state = 1
    for _ in range(255):
        bits.append(state & 1)
        state <<= 1
        if state & 0x100:
            state ^= 0x171
    return bits


def _round_constants() -> list[int]:
    bits = _lfsr_bits()
    constants: list[int] = []
    for round_index in range(_ROUNDS):
        rc = 0
        for j in range(7):
            if bits[j + 7 * round_index]:
                rc |= 1 << ((1 << j) - 1)
        constants.append(rc)
    return constants


def _rotation_offsets() -> list[int]:
    """rho offsets indexed by lane x + 5 * y."""
    offsets = [0] * 25
    x, y = 1, 0
    for t in range(24):
        offsets[x + 5 * y] = ((t + 1) * (t + 2) // 2) % 64
        x, y = y, (2 * x + 3 * y) % 5
    return offsets


_ROUND_CONSTANTS = _round_constants()
_RHO = _rotation_offsets()
# pi moves lane (x, y) to (y, 2x + 3y)
_PI = [y + 5 * ((2 * x + 3 * y) % 5) for y in range(5) for x in range(5)]


def _rol(lane: int, n: int) -> int:
    return ((lane << n) | (lane >> (64 - n))) & _LANE_MASK


def _keccak_f(state: list[int]) -> None:
    for rc in _ROUND_CONSTANTS:
        # theta
        columns = [state[x] ^ state[x + 5] ^ state[x + 10] ^ state[x + 15] ^ state[x + 20] for x in range(5)]
        for x in range(5):
            d = columns[(x + 4) % 5] ^ _rol(columns[(x + 1) % 5], 1)
            for i in range(x, 25, 5):
                state[i] ^= d

        # rho and pi
        moved = [0] * 25
        for i, lane in enumerate(state):
            moved[_PI[i]] = _rol(lane, _RHO[i])

        # chi
        for row in range(0, 25, 5):
            a = moved[row : row + 5]
            for x in range(5):
                state[row + x] = a[x] ^ (~a[(x + 1) % 5] & a[(x + 2) % 5])

        # iota
        state[0] ^= rc


def keccak256(data: bytes) -> bytes:
    message = bytearray(data)
    message.append(0x01)
    message.extend(bytes(-len(message) % _RATE))
    message[-1] |= 0x80

    state = [0] * 25
    for start in range(0, len(message), _RATE):
        for i in range(_RATE // 8):
            offset = start + 8 * i
            state[i] ^= int.from_bytes(message[offset : offset + 8], "little")
        _keccak_f(state)

    return b"".join(lane.to_bytes(8, "little") for lane in state[:4])
