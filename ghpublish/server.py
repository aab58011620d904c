"""MCP server exposing ghpublish as tools."""

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from . import __version__
from .config import PublishOptions, load_configuration, validate_configuration
from .errors import error_handler
from .files import collect_directory
from .git_publish import GitAdapter, Publisher, RepoHandle


def setup_logging(options: PublishOptions) -> None:
    """Setup logging for the package loggers."""

    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, options.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr
    )

    loggers = [
        'ghpublish.init',
        'ghpublish.config',
        'ghpublish.files',
        'ghpublish.git_publish',
        'ghpublish.error_handler'
    ]

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, options.log_level))

        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False


async def publish_directory(
    source_dir: str,
    options: PublishOptions,
    branch: Optional[str] = None,
    message: Optional[str] = None,
    push: Optional[bool] = None,
    remote_url: Optional[str] = None
) -> Dict[str, Any]:
    """Publish every file below ``source_dir``; returns a result or error dict."""
    overrides = {
        key: value for key, value in (
            ('branch', branch), ('message', message), ('push', push), ('remote_url', remote_url)
        ) if value is not None
    }
    context = {'source_dir': source_dir, 'branch': overrides.get('branch', options.branch)}

    try:
        publish_options = dataclasses.replace(options, **overrides)
        result = await Publisher(publish_options).run(collect_directory(Path(source_dir)))
        return error_handler.create_success_response("publish_directory", result.to_dict(), context)
    except Exception as e:
        return error_handler.handle_publish_error(e, context).to_dict()


async def repository_status(options: PublishOptions) -> Dict[str, Any]:
    """Refreshed view of the cached working copy."""
    adapter = GitAdapter()
    context = {'cache_dir': str(options.cache_dir)}

    try:
        repo = await adapter.open_repo(options.cache_dir)
        handle = RepoHandle(
            repo,
            await adapter.current_branch(repo),
            adapter=adapter,
            history_limit=options.history_limit
        )
        handle = await handle.refresh()
        data = {
            'current_branch': handle.current_branch,
            'local_branches': list(handle.local_branches),
            'remote_branches': list(handle.remote_branches),
            'staged_files': len(handle.staged_files),
            'remote_url': await handle.remote_url(options.origin),
            'recent_commits': [dataclasses.asdict(commit) for commit in handle.commit_history]
        }
        return error_handler.create_success_response("repository_status", data, context)
    except Exception as e:
        return error_handler.handle_publish_error(e, context).to_dict()


def register_tools(server: FastMCP, options: PublishOptions) -> None:
    """Register MCP tools with the server instance."""

    @server.tool()
    async def publish_site(
        source_dir: str,
        branch: Optional[str] = None,
        message: Optional[str] = None,
        push: Optional[bool] = None,
        remote_url: Optional[str] = None
    ) -> dict:
        """
        Publish a built site directory to a branch of the configured repository.

        Args:
            source_dir: Directory containing the generated files (e.g. "dist" or "_site")
            branch: Target branch, defaults to the configured branch ("gh-pages")
            message: Commit message, defaults to "Update <timestamp>"
            push: Whether to push the commit, defaults to the configured value
            remote_url: Repository URL, defaults to the configured or derived one

        Returns:
            Dictionary describing the publish (branch, commit id, whether anything changed)
            or an error response
        """
        return await publish_directory(source_dir, options, branch, message, push, remote_url)

    @server.tool()
    async def publish_status() -> dict:
        """
        Show the state of the cached working copy used for publishing.

        Returns:
            Current branch, known branches, staged file count and recent commits
        """
        return await repository_status(options)

    logging.getLogger('ghpublish.init').info("MCP tools registered successfully")


def initialize_server() -> FastMCP:
    """Initialize the MCP server with stdio transport."""
    options = load_configuration()
    setup_logging(options)
    init_logger = logging.getLogger('ghpublish.init')

    validation_issues = validate_configuration(options)
    for issue in validation_issues:
        if issue.startswith("ERROR:"):
            init_logger.error(issue[7:])
        elif issue.startswith("WARNING:"):
            init_logger.warning(issue[9:])

    error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
    if error_count > 0:
        init_logger.critical(f"Server startup failed due to {error_count} configuration error(s)")
        sys.exit(1)

    init_logger.info(f"Publishing to branch '{options.branch}' using cache {options.cache_dir}")

    server = FastMCP("ghpublish", log_level=options.log_level)
    register_tools(server, options)
    return server


def main():
    """Entry point for the ghpublish MCP server."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr
    )
    startup_logger = logging.getLogger('ghpublish.startup')
    startup_logger.info(f"ghpublish MCP server {__version__}")

    try:
        server = initialize_server()
        startup_logger.info("Starting server with stdio transport")
        server.run(transport="stdio")
    except KeyboardInterrupt:
        startup_logger.info("Server stopped by user (Ctrl+C)")
    except ValueError as e:
        startup_logger.critical(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
