import re
import json
import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from . import crypto_aes
from .crypto_aes import Decrypted
from .escapes import normalize_token, normalize_plaintext
from .errors import (
    PageFormatError,
    ContainerFormatError,
    DecryptionError,
    ManifestFormatError,
    DateParseError,
)

logger = logging.getLogger(__name__)

RECEIVED_DATA_REGEX = re.compile(r"""receivedData\s*=\s*["'](.*)["']\s*;""")
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CHAPTER_PREFIX = "Capítulo"


@dataclass
class ChapterRecord:
    slug: str
    name: str
    number: object
    created_at: str


@dataclass
class ChapterEntity:
    name: str
    url: str
    published_at: int

    def to_dict(self):
        return {"name": self.name, "url": self.url, "published_at": self.published_at}


def locate_token(html):
    """查找页面中 receivedData = "..."; 的字符串字面量，找不到返回None"""
    match = RECEIVED_DATA_REGEX.search(html)
    return match.group(1) if match else None


def decode_hex(text):
    if len(text) % 2:
        raise ContainerFormatError("salt must have an even length")
    try:
        salt = bytes.fromhex(text)
    except ValueError as e:
        raise ContainerFormatError(f"salt is not valid hex: {e}") from e
    if len(salt) != crypto_aes.SALT_SIZE:
        raise ContainerFormatError(f"salt must be {crypto_aes.SALT_SIZE} bytes, got {len(salt)}")
    return salt


def parse_container(text):
    """将 {"ct": base64, "s": hex} 转为 Salted__ 容器，只做拼接不做解密

    Args:
        text: 已做过一次反转义的容器 JSON

    Returns:
        str: base64 编码的 Salted__ 容器
    """
    try:
        container = json.loads(text)
    except json.JSONDecodeError as e:
        raise ContainerFormatError(f"chapter data is not valid JSON: {e}") from e
    if not isinstance(container, dict):
        raise ContainerFormatError("chapter data is not an object")
    ct, s = container.get("ct"), container.get("s")
    if not isinstance(ct, str) or not isinstance(s, str):
        raise ContainerFormatError("chapter data is missing ct or s")

    salt = decode_hex(s)
    try:
        ciphertext = base64.b64decode(ct, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ContainerFormatError(f"ciphertext is not valid base64: {e}") from e
    if not ciphertext or len(ciphertext) % crypto_aes.BLOCK_SIZE:
        raise ContainerFormatError(f"ciphertext length {len(ciphertext)} is not a positive multiple of {crypto_aes.BLOCK_SIZE}")
    return crypto_aes.build_salted_blob(salt, ciphertext)


def decrypt_manifest(salted_blob, key_resolver, decrypt=crypto_aes.decrypt):
    """用缓存口令解密，口令过期时刷新一次后重试

    最多刷新一次，避免站点一直拒绝时无限请求脚本。
    """
    refreshed = False
    key = key_resolver.key
    if key is None:
        key = key_resolver.refresh()
        refreshed = True

    result = decrypt(salted_blob, key)
    if not isinstance(result, Decrypted) and not refreshed:
        logger.info("缓存口令已失效，重新获取口令...")
        key = key_resolver.refresh()
        result = decrypt(salted_blob, key)

    if not isinstance(result, Decrypted):
        raise DecryptionError("unable to decrypt chapter manifest")
    return result.text


def load_records(text):
    """将规范化后的文本解析为 ChapterRecord 列表"""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestFormatError(f"chapter manifest is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ManifestFormatError("chapter manifest is not an array")

    records = []
    for item in data:
        if not isinstance(item, dict):
            raise ManifestFormatError("chapter manifest entry is not an object")
        try:
            records.append(ChapterRecord(
                slug=item["slug"],
                name=item["name"],
                number=item["number"],
                created_at=item["createdAt"],
            ))
        except KeyError as e:
            raise ManifestFormatError(f"chapter manifest entry is missing {e}") from e
    return records


def resolve_manifest(html, key_resolver, decrypt=crypto_aes.decrypt):
    """章节页面 HTML -> ChapterRecord 列表

    Args:
        html: 章节列表页面
        key_resolver: 持有口令的 KeyResolver
        decrypt: 解密函数，签名同 crypto_aes.decrypt

    Returns:
        list: ChapterRecord 列表，顺序与站点一致
    """
    token = locate_token(html)
    if token is None:
        raise PageFormatError("chapter data marker not found")

    salted_blob = parse_container(normalize_token(token))
    plaintext = decrypt_manifest(salted_blob, key_resolver, decrypt)
    return load_records(normalize_plaintext(plaintext))


def format_number(number):
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def chapter_name(record):
    default_name = f"{CHAPTER_PREFIX} {format_number(record.number)}"
    if not record.name or record.name == default_name:
        return default_name
    return f"{default_name}: {record.name}"


def parse_date(text):
    """按 yyyy-MM-dd HH:mm:ss (UTC) 解析为毫秒时间戳"""
    try:
        parsed = datetime.strptime(text, DATE_FORMAT)
    except (TypeError, ValueError) as e:
        raise DateParseError(f"unexpected date {text!r}") from e
    return int(parsed.replace(tzinfo=timezone.utc).timestamp() * 1000)


def decode_manifest(records, manga_url):
    """ChapterRecord -> ChapterEntity，不重新排序"""
    base_url = manga_url.rstrip("/")
    chapters = []
    for record in records:
        try:
            published_at = parse_date(record.created_at)
        except DateParseError as e:
            logger.warning("章节 %s 日期解析失败: %s", record.slug, e)
            published_at = 0
        chapters.append(ChapterEntity(
            name=chapter_name(record),
            url=f"{base_url}/{record.slug}",
            published_at=published_at,
        ))
    return chapters
