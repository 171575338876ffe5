"""MCP tool server exposing repository synchronization."""

import logging
import sys
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .config import Config, load_configuration, validate_configuration
from .errors import ConfigurationError, CredentialError
from .platform import get_platform_info, validate_git_availability
from .repo_sync import LoggingReporter, SyncMode, sync_from_config
from .repo_sync.repository_info import LocalPathState
from .repo_sync.state import classify_local_path


def setup_logging(config: Config) -> None:
    """Setup logging configuration with structured operation prefixes."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    loggers = [
        'curator.init',
        'curator.config',
        'curator.repo_sync'
    ]

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, config.log_level))

        if not logger.handlers:
            # stdout carries the MCP stdio transport
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False


def list_repository_states(config: Config) -> dict:
    """Configured repositories with their local clone state."""
    repositories = []
    for name in config.repositories:
        state, handle = classify_local_path(config.repository_path(name), name)
        if handle is not None:
            handle.close()
        repositories.append({"name": name, "state": state.value})

    cloned = sum(1 for entry in repositories if entry["state"] == LocalPathState.REPOSITORY.value)
    return {
        "storage_path": str(config.storage_path),
        "source": config.source,
        "cloned": cloned,
        "total": len(repositories),
        "repositories": repositories
    }


def run_sync(config: Config, mode: SyncMode, repositories: Optional[List[str]], source: Optional[str]) -> dict:
    """Run a synchronization and convert the report for the tool response."""
    logger = logging.getLogger('curator.init')
    reporter = LoggingReporter()

    try:
        report = sync_from_config(
            config,
            mode,
            repositories=repositories or None,
            source=source or None,
            listener=reporter
        )
    except ConfigurationError as e:
        logger.error(f"Invalid {mode.value} request: {e}")
        return {"success": False, "error_code": "INVALID_SELECTION", "message": str(e)}
    except CredentialError as e:
        logger.error(f"{mode.value.capitalize()} aborted: {e}")
        return {"success": False, "error_code": "CREDENTIALS_UNAVAILABLE", "message": str(e)}

    reporter.log_report(report)
    result = report.to_dict()
    result["success"] = not report.failed
    return result


def register_tools(server: FastMCP, server_config: Config) -> None:
    """Register MCP tools with the server instance."""

    @server.tool()
    def list_repositories() -> dict:
        """
        List the configured repositories and whether each is cloned locally.

        Returns:
            Dictionary with the storage path, the number of cloned
            repositories and, per repository, its local state (missing,
            repository, empty_directory or not_repository)
        """
        return list_repository_states(server_config)

    @server.tool()
    def clone_repositories(repositories: Optional[List[str]] = None, source: Optional[str] = None) -> dict:
        """
        Clone repositories that are not present locally yet.

        Existing local repositories are left untouched. After each clone,
        local branches are created for every remote branch, the remote is
        configured to push to both providers, setup scripts are run and
        submodules are prepared the same way.

        Args:
            repositories: Names to clone (all configured repositories when omitted)
            source: "origin" or "mirror"; the configured source when omitted

        Returns:
            Report with one outcome per repository, including secondary errors
        """
        return run_sync(server_config, SyncMode.CLONE, repositories, source)

    @server.tool()
    def pull_repositories(repositories: Optional[List[str]] = None, source: Optional[str] = None) -> dict:
        """
        Fast-forward local repositories and their submodules from their upstream.

        Args:
            repositories: Names to pull (all configured repositories when omitted)
            source: "origin" or "mirror"; the configured source when omitted

        Returns:
            Report with one outcome per repository, with short old/new
            commit ids for repositories that received new commits
        """
        return run_sync(server_config, SyncMode.PULL, repositories, source)

    init_logger = logging.getLogger('curator.init')
    init_logger.info("MCP tools registered successfully")


def initialize_server() -> FastMCP:
    """Initialize MCP server with stdio transport."""
    try:
        server_config = load_configuration()
        validation_issues = validate_configuration(server_config)

        setup_logging(server_config)
        init_logger = logging.getLogger('curator.init')

        if validation_issues:
            for issue in validation_issues:
                if issue.startswith("ERROR:"):
                    init_logger.error(issue[7:])
                elif issue.startswith("WARNING:"):
                    init_logger.warning(issue[9:])

            error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
            if error_count > 0:
                init_logger.critical(f"Server startup failed due to {error_count} configuration error(s)")
                sys.exit(1)

        init_logger.info("Configuration loaded successfully")

        git_available, git_error = validate_git_availability()
        if not git_available:
            init_logger.critical(f"Git is not available: {git_error}")
            sys.exit(1)

        init_logger.info("Initializing MCP server with stdio transport")
        server = FastMCP(
            "Curator Repository Sync",
            log_level=server_config.log_level
        )

        register_tools(server, server_config)

        init_logger.info(
            f"Curator MCP server initialized: {len(server_config.repositories)} repositories "
            f"under {server_config.storage_path}"
        )
        return server

    except SystemExit:
        raise
    except Exception as e:
        if 'init_logger' not in locals():
            logging.basicConfig(level=logging.ERROR)
            init_logger = logging.getLogger('curator.init')

        init_logger.critical(f"Server initialization failed: {e}", exc_info=True)
        raise


def main():
    """Main entry point for the Curator server with stdio transport."""
    startup_logger = None

    try:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            stream=sys.stderr
        )
        startup_logger = logging.getLogger('curator.startup')

        from . import __version__
        startup_logger.info(f"Curator MCP Server {__version__}")
        startup_logger.info(f"Platform: {get_platform_info().get_platform_name()}")

        server = initialize_server()

        startup_logger.info("Starting server with stdio transport")
        server.run(transport="stdio")

    except KeyboardInterrupt:
        if startup_logger:
            startup_logger.info("Server stopped by user (Ctrl+C)")
    except SystemExit:
        raise
    except Exception as e:
        if startup_logger:
            startup_logger.critical(f"Server failed to start: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
