import logging
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .base_crawler import BaseCrawler
from .deobfuscator import SynchronyDeobfuscator
from .key_resolver import KeyResolver
from .manifest import resolve_manifest, decode_manifest

logger = logging.getLogger(__name__)

BASE_URL = "https://mangas.in"
ITEM_PATH = "manga"
KEY_SCRIPT_PATH = "/js/datachs.js"
SEARCH_PAGE_SIZE = 20

STATUS_COMPLETE = {"complete", "completed", "completo", "finalizado"}
STATUS_ONGOING = {"ongoing", "en curso", "en emisión", "publicándose"}
STATUS_DROPPED = {"dropped", "abandonado", "cancelado"}


class MangasInCrawler(BaseCrawler):
    """Mangas.in 漫画源，章节列表经过 AES 加密"""

    def __init__(self, proxies=None, headers=None, base_url=BASE_URL, cache_dir=None, deobfuscator=None, timeout=30):
        self.BASE_URL = base_url.rstrip("/")
        headers = headers or {
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
            "Accept": "*/*",
            "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
            "Referer": f"{self.BASE_URL}/",
            "Connection": "keep-alive"
        }
        super().__init__(proxies, headers, cache_dir, timeout)
        self.key_resolver = KeyResolver(
            self.fetch_text,
            f"{self.BASE_URL}{KEY_SCRIPT_PATH}",
            deobfuscator or SynchronyDeobfuscator(),
        )

    def manga_url(self, slug):
        return f"{self.BASE_URL}/{ITEM_PATH}/{slug}"

    def cover_url(self, slug):
        return f"{self.BASE_URL}/uploads/manga/{slug}/cover/cover_250x350.jpg"

    def search_manga(self, keyword, page=1):
        self.clear_cache("search")
        try:
            response = self.get(f"{self.BASE_URL}/search", params={"q": keyword})
            if response.status_code != 200:
                return f"搜索失败，状态码: {response.status_code}"
            search_results = self.suggestions_to_json(response.json(), page)
            self.save_to_cache("search", search_results)
            return self.format_search_results(search_results)
        except Exception as e:
            return f"搜索失败: {e}"

    def suggestions_to_json(self, suggestions, page=1):
        """搜索接口一次返回全部建议，按页切分"""
        start = (page - 1) * SEARCH_PAGE_SIZE
        result = {
            "results": {
                "total": len(suggestions),
                "list": [],
                "has_next_page": start + SEARCH_PAGE_SIZE < len(suggestions),
            }
        }
        for item in suggestions[start:start + SEARCH_PAGE_SIZE]:
            slug = item["data"]
            result["results"]["list"].append({
                "name": item["value"],
                "path_word": slug,
                "url": self.manga_url(slug),
                "cover": self.cover_url(slug),
            })
        return result

    def latest_updates(self, page=1):
        self.clear_cache("search")
        try:
            response = self.get(f"{self.BASE_URL}/lasted", params={"p": page})
            if response.status_code != 200:
                return f"获取最近更新失败，状态码: {response.status_code}"
            latest = self.latest_to_json(response.json(), page)
            self.save_to_cache("search", latest)
            return self.format_search_results(latest)
        except Exception as e:
            return f"获取最近更新失败: {e}"

    def latest_to_json(self, data, page=1):
        result = {
            "results": {
                "total": len(data["data"]),
                "list": [],
                "has_next_page": page < data["totalPages"],
            }
        }
        for item in data["data"]:
            slug = item["slug"]
            result["results"]["list"].append({
                "name": item["name"],
                "path_word": slug,
                "url": self.manga_url(slug),
                "cover": self.cover_url(slug),
            })
        return result

    def format_search_results(self, search_results):
        if not search_results or len(search_results["results"]["list"]) == 0:
            return "未找到相关漫画"
        manga_list = search_results["results"]["list"]
        result_str = f"\n找到 {search_results['results']['total']} 个相关漫画:\n"
        for i, manga in enumerate(manga_list):
            result_str += f"{i + 1}. {manga['name']}\n"
            result_str += f"   路径: {manga['path_word']}\n"
            result_str += "\n"
        if search_results["results"].get("has_next_page"):
            result_str += "还有下一页\n"
        return result_str

    def resolve_manga(self, index_or_url):
        """索引、slug 或完整 URL -> (manga_url, manga_name)

        Returns:
            dict: {"url", "name"}，失败时为 {"error"}
        """
        index_or_url = str(index_or_url).strip()
        if index_or_url.isdigit():
            search_results = self.load_from_cache("search")
            if not search_results or "results" not in search_results:
                return {"error": "无搜索缓存，请先搜索漫画"}
            idx = int(index_or_url) - 1
            manga_list = search_results["results"]["list"]
            if idx < 0 or idx >= len(manga_list):
                return {"error": f"无效的索引: {index_or_url}"}
            manga = manga_list[idx]
            return {"url": manga["url"], "name": manga["name"]}
        if index_or_url.startswith(("http://", "https://")):
            slug = urlsplit(index_or_url).path.rstrip("/").split("/")[-1]
            return {"url": index_or_url.rstrip("/"), "name": slug}
        return {"url": self.manga_url(index_or_url.strip("/")), "name": index_or_url}

    def get_manga_details(self, index_or_url):
        manga = self.resolve_manga(index_or_url)
        if "error" in manga:
            return manga
        try:
            response = self.fetch(manga["url"])
        except Exception as e:
            return {"error": f"获取漫画详情失败: {e}"}
        return self.parse_details(response.text, manga["url"])

    def parse_details(self, html, manga_url):
        soup = BeautifulSoup(html, "html.parser")
        slug = urlsplit(manga_url).path.rstrip("/").split("/")[-1]
        title = soup.select_one('meta[property="og:title"]')
        if title and title.get("content"):
            name = title["content"].strip()
        elif soup.title and soup.title.string:
            name = soup.title.string.strip()
        else:
            name = slug

        label = soup.select_one("div.manga-name span.label")
        status_text = label.text.strip().lower() if label else ""
        if status_text in STATUS_COMPLETE:
            status = "completed"
        elif status_text in STATUS_ONGOING:
            status = "ongoing"
        elif status_text in STATUS_DROPPED:
            status = "cancelled"
        else:
            status = "unknown"

        return {
            "name": name,
            "url": manga_url,
            "status": status,
            "cover": self.cover_url(slug),
        }

    def fetch_chapters(self, manga_url):
        """下载章节页面并解密章节清单

        Args:
            manga_url: 漫画页面 URL

        Returns:
            list: ChapterEntity 列表
        """
        response = self.fetch(manga_url)
        page_url = str(response.url or manga_url).rstrip("/")
        records = resolve_manifest(response.text, self.key_resolver)
        return decode_manifest(records, page_url)

    def get_manga_chapters(self, index_or_url):
        self.clear_cache("chapters")
        manga = self.resolve_manga(index_or_url)
        if "error" in manga:
            return manga["error"]
        try:
            chapters = self.fetch_chapters(manga["url"])
        except Exception as e:
            logger.debug("章节解析失败", exc_info=True)
            return f"获取章节列表失败: {e}"
        self.save_to_cache("chapters", [chapter.to_dict() for chapter in chapters])
        return self.format_chapter_list(manga["name"], chapters)
