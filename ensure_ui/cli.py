import argparse
import asyncio
import json
import os
import sys
import traceback

import yaml
from dotenv import load_dotenv
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ensure_ui.discovery import DEFAULT_FLOW_PATTERNS, discover_flows, discover_pages
from ensure_ui.executor import ResultAggregator
from ensure_ui.executor.run_executor import EnsureUIRunner
from ensure_ui.llm.llm_api import LLMProvider
from ensure_ui.utils.get_log import GetLog

DEFAULT_TIMEOUT_SECONDS = 15


def find_config_file(args_config=None):
    """Find the configuration file; returns None when no default location has one."""
    # 1. Command line arguments have highest priority
    if args_config:
        if os.path.isfile(args_config):
            print(f"✅ Using specified config file: {args_config}")
            return args_config
        raise FileNotFoundError(f"❌ Specified config file not found: {args_config}")

    # 2. Search default locations by priority
    current_dir = os.getcwd()
    script_dir = os.path.dirname(os.path.abspath(sys.argv[0] or __file__))

    default_paths = [
        os.path.join(current_dir, "config", "config.yaml"),
        os.path.join(script_dir, "config", "config.yaml"),
        os.path.join(current_dir, "config.yaml"),
        os.path.join(script_dir, "config.yaml"),
    ]

    for path in default_paths:
        if os.path.isfile(path):
            print(f"✅ Auto-discovered config file: {path}")
            return path
    return None


def load_yaml(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        print(f"[ERROR] Failed to read YAML: {e}", file=sys.stderr)
        sys.exit(1)


async def check_playwright_browsers_async():
    try:
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True)
            await browser.close()
        print("✅ Playwright browsers available")
        return True
    except PlaywrightError as e:
        print(f"⚠️ Playwright browsers unavailable: {e}")
        return False
    except Exception as e:
        print(f"❌ Playwright check exception: {e}")
        return False


def validate_and_build_llm_config(cfg, api_key=None):
    """Validate and build LLM configuration.

    Priority: ``--api-key`` flag, then environment variables, then the config file.
    """
    llm_cfg_raw = cfg.get("llm_config") or {}

    ensure_key = os.getenv("ENSURE_API_KEY")
    env_api_key = ensure_key or os.getenv("OPENAI_API_KEY")
    # Unset provider follows the key source
    default_api = LLMProvider.ENSURE_UI if not api_key and ensure_key else LLMProvider.OPENAI
    api_key = api_key or env_api_key or llm_cfg_raw.get("api_key", "")
    base_url = os.getenv("OPENAI_BASE_URL") or llm_cfg_raw.get("base_url", "")
    api = llm_cfg_raw.get("api") or default_api.value
    model = llm_cfg_raw.get("model", "gpt-4o")
    temperature = llm_cfg_raw.get("temperature", 0.1)

    if not api_key:
        raise ValueError(
            "❌ LLM API Key not configured! Please set one of the following:\n"
            "   - Command line: --api-key\n"
            "   - Environment variable: ENSURE_API_KEY or OPENAI_API_KEY\n"
            "   - Config file: llm_config.api_key"
        )
    try:
        LLMProvider(api)
    except ValueError:
        raise ValueError(f"❌ Unsupported llm_config.api '{api}', choose one of: {', '.join(p.value for p in LLMProvider)}")

    llm_config = {
        "api": api,
        "model": model,
        "api_key": api_key,
        "temperature": temperature,
    }
    if base_url:
        llm_config["base_url"] = base_url

    api_key_masked = f"{api_key[:8]}...{api_key[-4:]}" if len(api_key) > 12 else "***"
    print("✅ LLM configuration validation successful:")
    print(f"   - API: {api}")
    print(f"   - API Key: {api_key_masked}")
    print(f"   - Base URL: {base_url or 'default'}")
    print(f"   - Model: {model}")
    return llm_config


def build_run_config(cfg, args):
    """Merge config file, environment and command line into runner settings."""
    target = cfg.get("target") or {}
    tconf = cfg.get("test_config") or {}

    deployment_url = args.url or os.getenv("DEPLOYMENT_URL") or target.get("url", "")
    if not deployment_url:
        raise ValueError(
            "❌ Deployment URL not configured! Use --url, DEPLOYMENT_URL or target.url in the config file"
        )

    project_root = args.project or os.getenv("PROJECT_ROOT") or target.get("project_root") or os.getcwd()

    raw_timeout = args.timeout if args.timeout is not None else os.getenv("TIMEOUT") or tconf.get("timeout")
    try:
        timeout_seconds = float(raw_timeout) if raw_timeout not in (None, "") else DEFAULT_TIMEOUT_SECONDS
        if timeout_seconds <= 0:
            raise ValueError
    except (TypeError, ValueError):
        print(f"⚠️  Invalid timeout setting: {raw_timeout}, fallback to {DEFAULT_TIMEOUT_SECONDS}s")
        timeout_seconds = DEFAULT_TIMEOUT_SECONDS

    browser_cfg = cfg.get("browser_config") or {}
    browser_config = {
        "headless": browser_cfg.get("headless", True),
        "viewport": browser_cfg.get("viewport", {"width": 1280, "height": 720}),
        "language": browser_cfg.get("language", "en-US"),
    }

    return {
        "deployment_url": deployment_url,
        "project_root": os.path.abspath(project_root),
        "timeout": int(timeout_seconds * 1000),
        "browser_config": browser_config,
        "screenshot_dir": tconf.get("screenshot_dir", "screenshots"),
        "report_dir": tconf.get("report_dir"),
        "flow_patterns": tconf.get("flow_patterns") or list(DEFAULT_FLOW_PATTERNS),
        "allow_static_interactions": bool(tconf.get("allow_static_interactions", True)),
        "max_page_chars": int(tconf.get("max_page_chars", 6000)),
    }


def write_github_output(results):
    output_path = os.getenv("GITHUB_OUTPUT")
    if not output_path:
        return
    payload = json.dumps(results.model_dump(mode="json"), ensure_ascii=False)
    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"results={payload}\n")


def print_summary(results):
    print("\n📊 Final Results:")
    print(f"Pages: {results.passed_pages}/{results.total_pages} passed")
    if results.total_flows:
        print(f"Flows: {results.passed_flows}/{results.total_flows} passed")
    if results.exit_code == 0:
        print("✅ All tests passed!")
    else:
        print("❌ Some tests failed")


async def run_tests(cfg, args):
    try:
        llm_config = validate_and_build_llm_config(cfg, api_key=args.api_key)
        run_config = build_run_config(cfg, args)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    print("🔍 Checking Playwright browsers...")
    if not await check_playwright_browsers_async():
        print("Please manually run: `playwright install` to install browser binaries, then retry.", file=sys.stderr)
        return 1

    log_cfg = cfg.get("log") or {}
    GetLog.get_log(level=log_cfg.get("level", "info"))

    print(f"🤖 Testing: {run_config['deployment_url']}")
    print(f"📁 Project: {run_config['project_root']}")

    pages = discover_pages(run_config["project_root"])
    flows = [] if args.no_flows else discover_flows(run_config["project_root"], run_config["flow_patterns"])

    runner = EnsureUIRunner(
        llm_config,
        run_config["deployment_url"],
        browser_config=run_config["browser_config"],
        timeout=run_config["timeout"],
        project_root=run_config["project_root"],
        screenshot_dir=run_config["screenshot_dir"],
        allow_static_interactions=run_config["allow_static_interactions"],
        max_page_chars=run_config["max_page_chars"],
    )

    if args.page:
        results = await runner.run_single_page(args.page, pages)
        if results.total_pages == 0:
            print(f"❌ No testable page found for route {args.page}", file=sys.stderr)
            return 1
    else:
        if not pages and not flows:
            print("⚠️  No pages with ensureUI comments and no flow documents found")
        results = await runner.run(pages, flows)

    aggregator = ResultAggregator()
    paths = aggregator.write_reports(results, run_config["report_dir"])
    if paths.get("markdown"):
        print(f"Report: {paths['markdown']}")

    print_summary(results)
    write_github_output(results)
    return results.exit_code


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="EnsureUI: test pages against their ensureUI comments")
    parser.add_argument("--config", "-c", help="YAML configuration file path (optional, default auto-search config/config.yaml)")
    parser.add_argument("--project", "-p", help="Project root to scan for pages and flow documents")
    parser.add_argument("--url", "-u", help="Deployment URL to test against")
    parser.add_argument("--timeout", "-t", type=float, help="Timeout in seconds for navigation and checks")
    parser.add_argument("--api-key", "-k", dest="api_key", help="LLM API key")
    parser.add_argument("--page", metavar="ROUTE", help="Test only the page served at ROUTE")
    parser.add_argument("--no-flows", action="store_true", help="Skip flow documents")
    return parser.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)

    try:
        config_path = find_config_file(args.config)
    except FileNotFoundError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)
    cfg = load_yaml(config_path) if config_path else {}

    try:
        exit_code = asyncio.run(run_tests(cfg, args))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        exit_code = 1
    except Exception:
        print("Test execution failed, stack trace:", file=sys.stderr)
        traceback.print_exc()
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
