import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from cyberfly_sdk.config import LedgerConfig
from cyberfly_sdk.ledger.client import NodeLedger
from cyberfly_sdk.ledger.http import PactHttp
from cyberfly_sdk.wallet.identity import Identity

# RFC 8032, section 7.1, test 1
RFC8032_SECRET = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
RFC8032_PUBLIC = "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"

TEST_HOST = "https://ledger.test/chainweb/0.0"

Result = Union[Dict[str, Any], Callable[[Dict[str, Any]], Dict[str, Any]]]


def ok(data: Any) -> Dict[str, Any]:
    return {"status": "success", "data": data}


def fail(message: str) -> Dict[str, Any]:
    return {"status": "failure", "error": {"message": message}}


class FakeChainweb:
    """
    Scripted in-memory Pact API served through httpx.MockTransport.

    - `local_results` maps a function name (last segment, e.g. "get-node") to
      a result object or a callable(cmd) returning one. Unknown functions fail
      with "row not found".
    - `send` echoes the command hashes as request keys.
    - `poll` stays pending until the `resolve_on`-th poll, then returns
      `poll_result`.
    """

    def __init__(self) -> None:
        self.local_results: Dict[str, Result] = {}
        self.locals: List[str] = []
        self.sent: List[Dict[str, Any]] = []
        self.request_keys: List[str] = []
        self.send_status = 200
        self.polls = 0
        self.resolve_on = 1
        self.poll_result: Dict[str, Any] = ok("Write succeeded")
        self.poll_errors: List[int] = []
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        path = request.url.path
        if path.endswith("/api/v1/local"):
            cmd = json.loads(body["cmd"])
            code = cmd["payload"]["exec"]["code"]
            self.locals.append(code)
            fn = code[1:].split(" ", 1)[0].rstrip(")").rsplit(".", 1)[-1]
            res = self.local_results.get(fn)
            if callable(res):
                res = res(cmd)
            if res is None:
                res = fail(f"{fn}: row not found")
            return httpx.Response(200, json={"result": res})
        if path.endswith("/api/v1/send"):
            if self.send_status != 200:
                return httpx.Response(self.send_status, text="Validation failed: bad signature")
            self.sent.extend(json.loads(c["cmd"]) for c in body["cmds"])
            self.request_keys.extend(c["hash"] for c in body["cmds"])
            return httpx.Response(200, json={"requestKeys": [c["hash"] for c in body["cmds"]]})
        if path.endswith("/api/v1/poll"):
            self.polls += 1
            if self.polls in self.poll_errors:
                return httpx.Response(503, text="upstream unavailable")
            if self.polls < self.resolve_on:
                return httpx.Response(200, json={})
            key = body["requestKeys"][0]
            return httpx.Response(200, json={key: {"reqKey": key, "result": self.poll_result}})
        return httpx.Response(404, text="not found")

    def sent_codes(self) -> List[str]:
        return [c["payload"]["exec"]["code"] for c in self.sent]


@pytest.fixture
def identity() -> Identity:
    return Identity.from_keys(RFC8032_PUBLIC, RFC8032_SECRET)


@pytest.fixture
def fake() -> FakeChainweb:
    return FakeChainweb()


@pytest.fixture
def config() -> LedgerConfig:
    return LedgerConfig(api_host=TEST_HOST)


@pytest.fixture
def http(fake: FakeChainweb, config: LedgerConfig) -> PactHttp:
    client = httpx.Client(transport=httpx.MockTransport(fake.handler))
    return PactHttp(config.pact_api_url, client=client)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def ledger(config: LedgerConfig, http: PactHttp, identity: Identity, sleeps: List[float]) -> NodeLedger:
    return NodeLedger(config, identity=identity, http=http, sleep=sleeps.append)
