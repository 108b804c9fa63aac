"""Constants and configuration defaults for vulnreach.

Values that an operator may want to tune without code changes can be
overridden through ``VULNREACH_*`` environment variables.
"""

import os

# =============================================================================
# Advisory Source (OSV)
# =============================================================================

OSV_API_URL = os.environ.get("VULNREACH_OSV_URL", "https://api.osv.dev/v1")

# Per-request timeout in seconds
DEFAULT_REQUEST_TIMEOUT = float(os.environ.get("VULNREACH_REQUEST_TIMEOUT", 30))

# Retries after the first attempt for transient failures (timeouts, 429, 5xx)
DEFAULT_MAX_RETRIES = int(os.environ.get("VULNREACH_MAX_RETRIES", 3))

# Base delay in seconds; attempt n waits base * 2**n, capped below
DEFAULT_RETRY_BACKOFF = float(os.environ.get("VULNREACH_RETRY_BACKOFF", 0.5))
MAX_RETRY_BACKOFF = 8.0

# HTTP statuses worth retrying
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# OSV API rate limits
OSV_RATE_LIMIT_CALLS = 20
OSV_RATE_LIMIT_PERIOD = 60.0


# =============================================================================
# Cache Configuration
# =============================================================================

# Advisory responses are cached for 15 minutes by default
DEFAULT_CACHE_TTL_SECONDS = int(os.environ.get("VULNREACH_CACHE_TTL", 900))

ADVISORY_CACHE_MAX_SIZE = 1000


# =============================================================================
# Scanning
# =============================================================================

# Files larger than this are skipped with a read error (5MB)
MAX_SOURCE_FILE_SIZE = int(
    os.environ.get("VULNREACH_MAX_FILE_SIZE", 5 * 1024 * 1024)
)

# Concurrent advisory lookups in scan_async
DEFAULT_MAX_CONCURRENCY = int(os.environ.get("VULNREACH_MAX_CONCURRENCY", 8))


# =============================================================================
# Ecosystems
# =============================================================================

ECOSYSTEM_NPM = "npm"
ECOSYSTEM_PYPI = "PyPI"
ECOSYSTEM_GO = "Go"

# Language tag -> ecosystem whose packages that language imports
LANGUAGE_ECOSYSTEMS = {
    "javascript": ECOSYSTEM_NPM,
    "typescript": ECOSYSTEM_NPM,
    "tsx": ECOSYSTEM_NPM,
    "python": ECOSYSTEM_PYPI,
    "go": ECOSYSTEM_GO,
}

# Separator used for subpath imports of a multi-module package
ECOSYSTEM_SEPARATORS = {
    ECOSYSTEM_NPM: "/",
    ECOSYSTEM_PYPI: ".",
    ECOSYSTEM_GO: "/",
}

# Declared versions that say nothing about the installed version
UNKNOWN_VERSION_MARKERS = frozenset({"", "*", "latest", "x"})

# Node.js core modules; never npm dependencies
NODE_BUILTIN_MODULES = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "sys",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)
