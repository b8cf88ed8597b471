import re

UNESCAPE_REGEX = re.compile(r'\\(.)')
UNICODE_ESCAPE_REGEX = re.compile(r'\\u([0-9a-fA-F]{4})')
QUOTE_CHARS = ('"', "'")


def unescape(text):
    """单次反转义: 每个 \\X 替换为 X"""
    return UNESCAPE_REGEX.sub(r'\1', text)


def unescape_unicode(text):
    """将 \\uXXXX 替换为对应字符，代理对合并为一个字符"""
    if '\\u' not in text:
        return text
    decoded = UNICODE_ESCAPE_REGEX.sub(lambda m: chr(int(m.group(1), 16)), text)
    return decoded.encode('utf-16', 'surrogatepass').decode('utf-16', 'surrogatepass')


def remove_surrounding_quotes(text):
    """首尾是同一个引号时只去掉最外层的一对"""
    if len(text) >= 2 and text[0] in QUOTE_CHARS and text[0] == text[-1]:
        return text[1:-1]
    return text


def normalize_token(token):
    """解密前: 还原嵌入脚本字符串时加的一层转义"""
    return unescape(token)


def normalize_plaintext(plaintext):
    """解密后: unicode 解码 -> 去引号 -> 反转义，顺序不可调换

    站点在加密前对章节 JSON 做了两次字符串化，
    需要先还原 \\u 转义才能看到外层引号。
    """
    text = unescape_unicode(plaintext)
    text = remove_surrounding_quotes(text)
    return unescape(text)
