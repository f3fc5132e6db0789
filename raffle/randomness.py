"""Derivation of random words from beacon entropy.

Words are ``keccak256(seed || uint256(request_id) || uint256(i))`` so that any
observer holding the published seed can recompute them, and with them the
winner index of a finalized round.
"""
from __future__ import annotations

from typing import List, Union

from web3 import Web3

Seed = Union[bytes, str]


def _seed_bytes(seed: Seed) -> bytes:
    if isinstance(seed, str):
        text = seed[2:] if seed.startswith("0x") else seed
        try:
            return bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError("seed must be hex encoded") from exc
    return bytes(seed)


def derive_random_words(seed: Seed, request_id: int, num_words: int) -> List[int]:
    if num_words < 1:
        raise ValueError("num_words must be at least 1")
    seed_bytes = _seed_bytes(seed)
    if not seed_bytes:
        raise ValueError("seed must not be empty")
    words = []
    for i in range(num_words):
        digest = Web3.solidity_keccak(
            ["bytes", "uint256", "uint256"], [seed_bytes, int(request_id), i]
        )
        words.append(int.from_bytes(digest, "big"))
    return words


def winner_index(random_word: int, participant_count: int) -> int:
    if participant_count <= 0:
        raise ValueError("participant_count must be positive")
    return int(random_word) % participant_count
