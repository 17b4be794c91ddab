"""Stratum protocol messages exchanged with an upstream pool."""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from typing import Any

CLIENT_VERSION = "ckgen/1.0.0"
MAX_MERKLES = 16
MAX_NONCE1_LEN = 15

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class StratumError(ValueError):
    """An upstream message that cannot be used."""


@dataclass
class Notify:
    """A mining.notify job as received from upstream."""

    jobid: Any
    prevhash: str
    coinbase1: str
    coinbase2: str
    merklehash: list[str] = field(default_factory=list)
    bbversion: str = ""
    nbit: str = ""
    ntime: str = ""
    clean: bool = False

    @property
    def coinb1len(self) -> int:
        return len(self.coinbase1) // 2

    @property
    def merkles(self) -> int:
        return len(self.merklehash)


@dataclass(frozen=True)
class Subscription:
    """Extranonce parameters returned by a successful subscribe."""

    enonce1: str
    enonce1_bin: bytes
    nonce2len: int

    @property
    def nonce1len(self) -> int:
        return len(self.enonce1_bin)

    @property
    def clients_per_proxy(self) -> int:
        return 1 << max(0, (self.nonce2len - 3) * 8)

    @property
    def nonce2_too_small(self) -> bool:
        return self.nonce2len < 3


@dataclass(frozen=True)
class ReconnectTarget:
    """Where a client.reconnect request asks us to go."""

    url: str
    same_url: bool


def _item(seq: Any, index: int) -> Any:
    if isinstance(seq, list) and 0 <= index < len(seq):
        return seq[index]
    return None


def _string(seq: Any, index: int) -> str | None:
    value = _item(seq, index)
    return value if isinstance(value, str) else None


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def find_notify(value: Any) -> list | None:
    """Find the array that starts with "mining.notify", at any depth."""
    if not isinstance(value, list):
        return None
    first = _item(value, 0)
    if isinstance(first, str) and first.startswith("mining.notify"):
        return value
    for item in value:
        found = find_notify(item)
        if found is not None:
            return found
    return None


def message_result(line: str) -> tuple[Any, Any]:
    """Decode a response line, returning its result and error members."""
    try:
        message = json.loads(line)
    except (json.JSONDecodeError, TypeError) as exc:
        raise StratumError(f"failed to decode json: {line!r}") from exc
    if not isinstance(message, dict):
        raise StratumError(f"response is not an object: {line!r}")
    return message.get("result"), message.get("error")


def parse_subscribe_result(result: Any) -> Subscription:
    """Extract the extranonce parameters from a mining.subscribe result."""
    if not isinstance(result, list):
        raise StratumError("subscribe result is not an array")
    if len(result) < 3:
        raise StratumError("subscribe result array too small")
    if find_notify(result) is None:
        raise StratumError("no notify found in subscribe result")
    enonce1 = _string(result, 1)
    if enonce1 is None:
        raise StratumError("failed to parse enonce1")
    nonce1len = len(enonce1) // 2
    if nonce1len > MAX_NONCE1_LEN:
        raise StratumError(f"nonce1 too long at {nonce1len}")
    try:
        enonce1_bin = bytes.fromhex(enonce1[: nonce1len * 2])
    except ValueError as exc:
        raise StratumError(f"enonce1 is not hex: {enonce1!r}") from exc
    nonce2len = _item(result, 2)
    if not _is_integer(nonce2len):
        raise StratumError("failed to parse nonce2len")
    if not 1 <= nonce2len <= 8:
        raise StratumError(f"invalid nonce2len {nonce2len}")
    return Subscription(enonce1=enonce1, enonce1_bin=enonce1_bin, nonce2len=nonce2len)


def parse_notify(params: Any) -> Notify:
    """Build a Notify from the params of a mining.notify message."""
    branches = _item(params, 4)
    if not isinstance(branches, list):
        raise StratumError("notify has no merkle branch array")
    jobid = _item(params, 0)
    fields = [_string(params, index) for index in (1, 2, 3, 5, 6, 7)]
    if jobid is None or any(value is None for value in fields):
        raise StratumError("notify is missing required fields")
    prevhash, coinbase1, coinbase2, bbversion, nbit, ntime = fields
    if len(branches) > MAX_MERKLES:
        raise StratumError(f"too many merkle branches: {len(branches)}")
    if not all(isinstance(branch, str) for branch in branches):
        raise StratumError("merkle branch is not a string")
    return Notify(
        jobid=copy.deepcopy(jobid),
        prevhash=prevhash[:64],
        coinbase1=coinbase1,
        coinbase2=coinbase2,
        merklehash=[branch[:64] for branch in branches],
        bbversion=bbversion[:8],
        nbit=nbit[:8],
        ntime=ntime[:8],
        clean=_item(params, 8) is True,
    )


def parse_diff(params: Any) -> float:
    """Difficulty from mining.set_difficulty params; 0.0 when absent."""
    value = _item(params, 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def _port(value: Any) -> int:
    if _is_integer(value):
        return value
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return 0


def parse_reconnect(params: Any, current_url: str) -> ReconnectTarget:
    """Work out the target of a client.reconnect, refusing other domains."""
    new_url = _string(params, 0)
    new_port = _port(_item(params, 1))
    if not new_url or not new_port:
        return ReconnectTarget(url=current_url, same_url=True)
    dot = current_url.find(".")
    if dot < 0:
        raise StratumError(f"reconnect from server without domain {current_url}")
    new_dot = new_url.find(".")
    if new_dot < 0:
        raise StratumError(f"reconnect to url without domain {new_url}")
    if not current_url[dot:].startswith(new_url[new_dot:]):
        raise StratumError(f"reconnect from {current_url} to non-matching domain {new_url}")
    return ReconnectTarget(url=f"{new_url}:{new_port}", same_url=False)


def subscribe_request(with_params: bool = True) -> dict:
    """A mining.subscribe request, optionally naming this client."""
    params = [CLIENT_VERSION] if with_params else []
    return {"id": 0, "method": "mining.subscribe", "params": params}


def authorize_request(auth: str, password: str) -> dict:
    """A mining.authorize request."""
    return {"id": 42, "method": "mining.authorize", "params": [auth, password]}


def passthrough_request() -> dict:
    """A mining.passthrough request."""
    return {"method": "mining.passthrough", "params": [CLIENT_VERSION]}


def node_request() -> dict:
    """A mining.node request."""
    return {"method": "mining.node", "params": [CLIENT_VERSION]}


def suggest_request(mindiff: int) -> dict:
    """A mining.suggest request carrying the minimum difficulty."""
    return {"id": 41, "method": "mining.suggest", "params": [mindiff]}


def submit_request(
    auth: str, jobid: Any, nonce2: Any, ntime: Any, nonce: Any, share_id: Any
) -> dict:
    """A mining.submit request for a share."""
    return {
        "params": [auth, jobid, nonce2, ntime, nonce],
        "id": share_id,
        "method": "mining.submit",
    }


def version_response(request_id: Any) -> dict:
    """Reply to client.get_version."""
    return {"id": request_id, "result": CLIENT_VERSION, "error": None}


def pong_response(request_id: Any) -> dict:
    """Reply to mining.ping."""
    return {"id": request_id, "result": "pong", "error": None}