"""
Command-line interface.

  crawlkit select URL SELECTOR [--attribute NAME]
  crawlkit crawl URLS_FILE SELECTOR [--attribute NAME]
"""

import argparse
import json
import sys
import threading
from typing import Any, Dict, List, Optional

from crawlkit.concurrent import BatchingQueue, WorkerPool
from crawlkit.config import SystemConfig, load_config
from crawlkit.crawlers import Collector
from crawlkit.selector import Attribute, Node
from crawlkit.utils.errors import CrawlKitError
from crawlkit.utils.logging import get_logger, setup_logging


logger = get_logger(__name__)


def extract_value(node: Node, attribute: Optional[str]) -> str:
    if attribute:
        return Attribute(attribute).value(node)
    return node.get_text(strip=True)


def select_url(config: SystemConfig, url: str, selector: str, attribute: Optional[str] = None) -> List[str]:
    """Visit one URL and return the extracted value of every matching node."""
    values: List[str] = []
    collector = Collector.with_defaults(config.http)
    collector.on_request(lambda request: logger.info(f"Fetching {request.url}"))
    collector.on_node(selector, lambda request, response, node: values.append(extract_value(node, attribute)))
    try:
        collector.visit(url)
    finally:
        collector.http_client.close()
    return values


def crawl_urls(
    config: SystemConfig,
    urls: List[str],
    selector: str,
    attribute: Optional[str] = None,
    output=None
) -> Dict[str, Any]:
    """
    Visit ``urls`` concurrently and write one JSON line per URL to ``output``.

    Results travel through a batching queue so output is written in batches
    from a single thread.
    """
    output = output or sys.stdout
    write_lock = threading.Lock()
    failures: List[Dict[str, str]] = []

    def write_batch(batch: List[Dict[str, Any]]) -> None:
        with write_lock:
            for record in batch:
                output.write(json.dumps(record, ensure_ascii=False) + "\n")
            output.flush()

    results: BatchingQueue[Dict[str, Any]] = BatchingQueue.from_config(config.batch_queue, write_batch)

    def visit(url: str) -> None:
        values = select_url(config, url, selector, attribute)
        results.add({"url": url, "values": values})

    def record_failure(url: str, error: Exception) -> None:
        failures.append({"url": url, "error": str(error)})

    pool: WorkerPool[str] = WorkerPool.from_config(config.worker_pool, visit, error_handler=record_failure)

    results.start()
    pool.start()
    try:
        for url in urls:
            pool.add(url)
        pool.wait()
    finally:
        pool.close()
        results.close()

    stats = pool.get_stats()
    return {
        "urls": len(urls),
        "succeeded": stats["completed"],
        "failed": stats["failed"],
        "failures": failures,
        "batches": results.get_stats()["batches_flushed"],
    }


def read_urls(path: str) -> List[str]:
    if path == "-":
        lines = sys.stdin.read().splitlines()
    else:
        with open(path, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith('#')]


def create_cli_parser() -> argparse.ArgumentParser:
    """Create command-line interface parser."""
    parser = argparse.ArgumentParser(
        prog='crawlkit',
        description='crawlkit - fetch pages and extract nodes with CSS selectors',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s select https://example.com "div.content p"
  %(prog)s select https://example.com "select#deputado option" --attribute value
  %(prog)s crawl urls.txt "h1" --output json
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to JSON configuration file'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Override log level from configuration'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        choices=['json', 'text'],
        default='text',
        help='Output format (default: text)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    select_parser = subparsers.add_parser('select', help='Extract matches from a single URL')
    select_parser.add_argument('url', help='URL to fetch')
    select_parser.add_argument('selector', help='Selector, e.g. "table#x tr td"')
    select_parser.add_argument('--attribute', '-a', help='Print this attribute instead of node text')

    crawl_parser = subparsers.add_parser('crawl', help='Extract matches from many URLs concurrently')
    crawl_parser.add_argument('urls_file', help='File with one URL per line ("-" for stdin)')
    crawl_parser.add_argument('selector', help='Selector applied to every page')
    crawl_parser.add_argument('--attribute', '-a', help='Print this attribute instead of node text')

    return parser


def format_output(data: Any, format_type: str) -> str:
    """Format output data according to specified format."""
    if format_type == 'json':
        return json.dumps(data, indent=2, default=str, ensure_ascii=False)
    if isinstance(data, dict):
        return '\n'.join(f"{key}: {value}" for key, value in data.items())
    if isinstance(data, list):
        return '\n'.join(map(str, data))
    return str(data)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line interface."""
    parser = create_cli_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except CrawlKitError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(args.log_level or config.log_level, config.log_file)

    try:
        if args.command == 'select':
            values = select_url(config, args.url, args.selector, args.attribute)
            print(format_output(values, args.output))
            return 0

        try:
            urls = read_urls(args.urls_file)
        except OSError as e:
            logger.error(f"Cannot read URLs from {args.urls_file}: {e}")
            return 2

        summary = crawl_urls(config, urls, args.selector, args.attribute)
        print(format_output(summary, args.output), file=sys.stderr)
        return 1 if summary["failed"] else 0

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        return 130
    except CrawlKitError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
