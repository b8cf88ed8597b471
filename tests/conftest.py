import json
import base64

import pytest

from mangasin_crawler import crypto_aes

SALT_HEX = "0011223344556677"
PASSPHRASE = "testkey"

# 站点加密前的明文: 章节 JSON 被字符串化两次
SIMPLE_PLAINTEXT = r'"[{\"slug\":\"ch-1\",\"name\":\"Capítulo 1\",\"number\":1,\"createdAt\":\"2024-01-01 00:00:00\"}]"'
SITE_PLAINTEXT = (
    r'"[{\"slug\":\"ch-2\",\"name\":\"El regreso del h\u00e9roe\",\"number\":2,\"createdAt\":\"2024-01-08 12:30:00\"},'
    r'{\"slug\":\"ch-1\",\"name\":\"Cap\u00edtulo 1\",\"number\":1,\"createdAt\":\"2024-01-01 00:00:00\"}]"'
)


class FakeResponse:
    def __init__(self, text="", status_code=200, url=None):
        self.text = text
        self.status_code = status_code
        self.url = url

    def json(self):
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP Error {self.status_code}")


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if url not in self.routes:
            raise RuntimeError(f"unexpected request: {url}")
        return self.routes[url]

    def urls(self):
        return [url for url, _ in self.calls]

    def close(self):
        pass


class FakeDeobfuscator:
    def __init__(self, key=PASSPHRASE, fail=False):
        self.key = key
        self.fail = fail
        self.scripts = []

    def deobfuscate(self, script):
        self.scripts.append(script)
        if self.fail:
            return None
        return f"function load(data) {{ return CryptoJS.AES.decrypt(data, '{self.key}', {{format: fmt}}); }}"


def build_container(plaintext, passphrase=PASSPHRASE, salt_hex=SALT_HEX):
    blob = crypto_aes.encrypt(plaintext, passphrase, bytes.fromhex(salt_hex))
    ciphertext = base64.b64decode(blob)[16:]
    return {"ct": base64.b64encode(ciphertext).decode("ascii"), "iv": "00" * 16, "s": salt_hex}


def embed_container(container):
    """模拟站点: JSON 中的 / 转义为 \\/，再嵌入 JS 双引号字符串"""
    text = json.dumps(container, separators=(",", ":")).replace("/", "\\/")
    token = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'<html><head><script>\nvar receivedData = "{token}";\n</script></head><body></body></html>'


def build_page(plaintext, passphrase=PASSPHRASE, salt_hex=SALT_HEX):
    return embed_container(build_container(plaintext, passphrase, salt_hex))


@pytest.fixture
def make_page():
    return build_page


@pytest.fixture
def make_container():
    return build_container


@pytest.fixture
def embed():
    return embed_container


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def deobfuscator():
    return FakeDeobfuscator()


@pytest.fixture
def make_deobfuscator():
    return FakeDeobfuscator


@pytest.fixture
def simple_plaintext():
    return SIMPLE_PLAINTEXT


@pytest.fixture
def site_plaintext():
    return SITE_PLAINTEXT
