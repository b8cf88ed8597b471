import logging

from mangasin_crawler.mangasin import MangasInCrawler

PROXIES = None

'''PROXIES = {
    "http":"http://127.0.0.1:7897",
    "https":"http://127.0.0.1:7897"
}'''


def read_page(prompt="请输入页数 [默认1]: "):
    page = input(prompt).strip() or "1"
    try:
        page = int(page)
    except ValueError:
        print("无效的页数，使用默认值1")
        return 1
    if page < 1:
        print("页数必须大于0，使用默认值1")
        return 1
    return page


def run(crawler):
    # 选择操作类型
    print("\n请选择操作类型:")
    print("1. 搜索漫画")
    print("2. 最近更新")
    print("3. 获取章节列表")
    print("4. 漫画详情")
    action_choice = input("请输入选项 [1/2/3/4]: ").strip()

    if action_choice == "1":
        keyword = input("\n请输入搜索关键词: ").strip()
        if not keyword:
            return "错误: 搜索操作需要提供关键词"
        return crawler.search_manga(keyword, read_page())

    elif action_choice == "2":
        return crawler.latest_updates(read_page())

    elif action_choice == "3":
        index_or_url = input("\n请输入漫画索引或URL/slug: ").strip()
        if not index_or_url:
            return "错误: 获取章节操作需要提供索引或URL/slug"
        return crawler.get_manga_chapters(index_or_url)

    elif action_choice == "4":
        index_or_url = input("\n请输入漫画索引或URL/slug: ").strip()
        if not index_or_url:
            return "错误: 获取详情操作需要提供索引或URL/slug"
        details = crawler.get_manga_details(index_or_url)
        if "error" in details:
            return details["error"]
        return "\n".join(f"{key}: {value}" for key, value in details.items())

    return "无效的操作选择"


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    print("Mangas.in 漫画工具")
    print("================")

    crawler = MangasInCrawler(proxies=PROXIES)
    try:
        print(run(crawler))
    finally:
        crawler.close()


if __name__ == '__main__':
    main()
