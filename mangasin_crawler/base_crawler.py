import os
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from curl_cffi.requests import Session

logger = logging.getLogger(__name__)


class BaseCrawler(ABC):
    """漫画源基类，定义统一接口"""

    def __init__(self, proxies=None, headers=None, cache_dir=None, timeout=30):
        """初始化爬虫基类，支持多站点缓存隔离

        Args:
            proxies: 代理设置，默认为None(直连)
            headers: 请求头设置，默认为None
            cache_dir: 缓存目录，默认为 ./cache/<站点>
            timeout: 单次请求超时(秒)

        Returns:
            None
        """
        crawler_id = self.__class__.__name__.lower().replace("crawler", "")
        self.CACHE_DIR = cache_dir or os.path.join("./cache", crawler_id)
        os.makedirs(self.CACHE_DIR, exist_ok=True)
        self.PROXIES = proxies
        self.HEADERS = headers or {
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
            "Accept": "*/*",
            "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
            "Connection": "keep-alive"
        }
        self.TIMEOUT = timeout
        self.session = None

    @abstractmethod
    def search_manga(self, keyword, page=1):
        """搜索漫画并缓存结果

        Args:
            keyword: 搜索关键词
            page: 页数

        Returns:
            str: 格式化的搜索结果
        """
        pass

    @abstractmethod
    def get_manga_chapters(self, index_or_url):
        """获取漫画章节列表

        Args:
            index_or_url: 索引或URL/slug

        Returns:
            str: 格式化的章节列表
        """
        pass

    def get_session(self):
        if self.session is None:
            self.session = Session(proxies=self.PROXIES, headers=self.HEADERS, verify=False)
        return self.session

    def get(self, url, params=None):
        """发送GET请求，不检查状态码"""
        return self.get_session().get(url, params=params, timeout=self.TIMEOUT)

    def fetch(self, url, params=None):
        """发送GET请求，非2xx状态码抛出异常"""
        response = self.get(url, params=params)
        response.raise_for_status()
        return response

    def fetch_text(self, url):
        return self.fetch(url).text

    def close(self):
        if self.session is not None:
            self.session.close()
            self.session = None

    def format_chapter_list(self, manga_name, chapters):
        """统一格式化章节列表的输出

        Args:
            manga_name: 漫画名称
            chapters: ChapterEntity 列表

        Returns:
            str: 格式化后的章节列表字符串
        """
        if not chapters:
            return f"{manga_name}: 无可用章节"
        lines = []
        for idx, chap in enumerate(chapters):
            if chap.published_at:
                date = datetime.fromtimestamp(chap.published_at / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
            else:
                date = "未知日期"
            lines.append(f"{idx + 1}. {chap.name} [{date}] ({chap.url})")
        return f"**{manga_name}** 章节列表:\n" + "\n".join(lines)

    def clear_cache(self, cache_type):
        """删除指定类型的所有缓存文件

        Args:
            cache_type: 缓存类型

        Returns:
            None
        """
        for fname in os.listdir(self.CACHE_DIR):
            if fname.startswith(f"{cache_type}_") and fname.endswith(".json"):
                try:
                    os.remove(os.path.join(self.CACHE_DIR, fname))
                except OSError as e:
                    logger.warning("删除缓存文件 %s 失败: %s", fname, e)

    def load_from_cache(self, cache_type):
        """直接加载指定类型的唯一缓存文件

        Args:
            cache_type: 缓存类型

        Returns:
            dict: 缓存的数据，如果不存在则返回None
        """
        cache_file = os.path.join(self.CACHE_DIR, f"{cache_type}_latest.json")
        if os.path.exists(cache_file):
            with open(cache_file, "r", encoding="utf-8") as f:
                return json.load(f)
        return None

    def save_to_cache(self, cache_type, data):
        """保存数据到指定类型的唯一缓存文件

        Args:
            cache_type: 缓存类型
            data: 要保存的数据

        Returns:
            None
        """
        os.makedirs(self.CACHE_DIR, exist_ok=True)
        cache_file = os.path.join(self.CACHE_DIR, f"{cache_type}_latest.json")
        with open(cache_file, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
