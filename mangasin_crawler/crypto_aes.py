import os
import base64
import binascii
import hashlib
from dataclasses import dataclass

import pyaes

SALTED = b"Salted__"
SALT_SIZE = 8
KEY_SIZE = 32
IV_SIZE = 16
BLOCK_SIZE = 16


@dataclass(frozen=True)
class Decrypted:
    """解密成功，text 可以是空字符串"""
    text: str


class Stale:
    """密钥错误或数据损坏，调用方应刷新密钥"""

    def __repr__(self):
        return "STALE"


STALE = Stale()


def evp_bytes_to_key(passphrase, salt, key_size=KEY_SIZE, iv_size=IV_SIZE):
    """OpenSSL EVP_BytesToKey (MD5, 1 次迭代)，返回 (key, iv)

    Args:
        passphrase: 口令字节
        salt: 8 字节盐值

    Returns:
        tuple: (key, iv)
    """
    derived = b""
    block = b""
    while len(derived) < key_size + iv_size:
        block = hashlib.md5(block + passphrase + salt).digest()
        derived += block
    return derived[:key_size], derived[key_size:key_size + iv_size]


def build_salted_blob(salt, ciphertext):
    """拼接 Salted__ + salt + ciphertext 并 base64 编码"""
    return base64.b64encode(SALTED + salt + ciphertext).decode("ascii")


def strip_pkcs7_padding(data):
    """校验并去除 PKCS#7 填充，填充不合法时返回 None"""
    if not data:
        return None
    padding = data[-1]
    if padding < 1 or padding > BLOCK_SIZE or data[-padding:] != bytes([padding]) * padding:
        return None
    return data[:-padding]


def decrypt(salted_blob, passphrase):
    """用口令解密 OpenSSL 格式的 AES-256-CBC 密文

    密钥错误、填充错误或无法按 UTF-8 解码时不抛异常，返回 STALE。

    Args:
        salted_blob: base64 编码的 Salted__ 容器
        passphrase: 口令字符串

    Returns:
        Decrypted | Stale
    """
    try:
        raw = base64.b64decode(salted_blob)
    except (binascii.Error, ValueError):
        return STALE

    header_size = len(SALTED) + SALT_SIZE
    ciphertext = raw[header_size:]
    if not raw.startswith(SALTED) or not ciphertext or len(ciphertext) % BLOCK_SIZE:
        return STALE

    salt = raw[len(SALTED):header_size]
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)

    # 关闭 pyaes 自带的去填充，它只检查最后一个字节
    decrypter = pyaes.Decrypter(pyaes.AESModeOfOperationCBC(key, iv=iv), padding=pyaes.PADDING_NONE)
    padded = decrypter.feed(ciphertext)
    padded += decrypter.feed()

    plaintext = strip_pkcs7_padding(padded)
    if plaintext is None:
        return STALE
    try:
        return Decrypted(plaintext.decode("utf-8"))
    except UnicodeDecodeError:
        return STALE


def encrypt(plaintext, passphrase, salt=None):
    """加密为 base64 编码的 Salted__ 容器，与 CryptoJS.AES.encrypt 输出格式一致"""
    salt = salt if salt is not None else os.urandom(SALT_SIZE)
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)

    encrypter = pyaes.Encrypter(pyaes.AESModeOfOperationCBC(key, iv=iv))
    ciphertext = encrypter.feed(plaintext.encode("utf-8"))
    ciphertext += encrypter.feed()
    return build_salted_blob(salt, ciphertext)
