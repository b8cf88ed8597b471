import re
import logging

from .errors import KeyRecoveryError

logger = logging.getLogger(__name__)

KEY_REGEX = re.compile(r"decrypt\(.*'(.*)'.*\)")


def find_key_literal(script):
    """在反混淆后的脚本中查找 decrypt(..., '<key>', ...) 调用的口令，找不到返回None"""
    match = KEY_REGEX.search(script)
    return match.group(1) if match else None


class KeyResolver:
    """持有当前解密口令，过期时从混淆脚本中重新提取

    每个爬虫实例一个，不做加锁；多线程共享同一实例时需由调用方串行化。
    """

    def __init__(self, fetch_text, script_url, deobfuscator):
        """
        Args:
            fetch_text: 接受 URL 返回响应文本的函数，失败时抛异常
            script_url: 混淆脚本地址
            deobfuscator: 提供 deobfuscate(text) -> str | None 的对象
        """
        self.fetch_text = fetch_text
        self.script_url = script_url
        self.deobfuscator = deobfuscator
        self.key = None

    def refresh(self):
        """重新下载脚本并提取口令，覆盖缓存

        Returns:
            str: 新口令
        """
        script = self.fetch_text(self.script_url)
        deobfuscated = self.deobfuscator.deobfuscate(script)
        if not deobfuscated:
            raise KeyRecoveryError("cannot deobfuscate key script")

        key = find_key_literal(deobfuscated)
        if key is None:
            raise KeyRecoveryError("cannot locate key literal")

        if self.key is not None and key == self.key:
            logger.info("脚本中的口令与缓存相同")
        else:
            logger.info("已从 %s 获取新口令", self.script_url)
        self.key = key
        return key
