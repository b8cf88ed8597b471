class CrawlerError(Exception):
    """爬虫异常基类"""


class PageFormatError(CrawlerError):
    """页面中找不到章节数据标记"""


class ContainerFormatError(CrawlerError):
    """加密容器格式错误 (盐值十六进制长度为奇数、base64 损坏、字段缺失)"""


class KeyRecoveryError(CrawlerError):
    """无法从混淆脚本中恢复密钥"""


class DecryptionError(CrawlerError):
    """刷新密钥后仍然无法解密"""


class ManifestFormatError(CrawlerError):
    """解密后的章节清单不是合法的 JSON 数组"""


class DateParseError(CrawlerError):
    """章节日期与预期格式不符，调用方回退为 0"""
