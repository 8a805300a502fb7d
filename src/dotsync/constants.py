"""
Constants and configuration values for dotsync.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

APP_NAME = "dotsync"

# GitHub API URLs
GITHUB_API_BASE = "https://api.github.com/repos"
GITHUB_RELEASES_URL_TEMPLATE = f"{GITHUB_API_BASE}/{{owner}}/{{repo}}/releases"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"

# Network timeouts and delays (in seconds)
GITHUB_API_TIMEOUT = 10
API_CALL_DELAY = 0.1  # Small delay to be respectful to GitHub API

# Download and retry settings
DEFAULT_CONNECT_RETRIES = 5
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 8192
RETRY_STATUS_FORCELIST = (408, 429, 500, 502, 503, 504)

# HTTP response cache
CACHE_STALE_AFTER_SECONDS = 15 * 60
CACHE_URL_TOO_LONG = 100
CACHE_METADATA_SUFFIX = ".json"
# Response headers that must never be written to disk
CACHE_SKIPPED_HEADERS = frozenset({"authorization", "cookie", "set-cookie"})

# Version stability
UNSTABLE_VERSION_KEYWORDS = ("alpha", "beta", "canary", "dev", "preview", "rc")

# Archive handling
TAR_GZ_EXTENSIONS = (".tar.gz", ".tgz")
ZIP_EXTENSION = ".zip"

# Install locations
LOCAL_BIN_DIR_PARTS = (".local", "bin")
LINUX_FONT_DIR_PARTS = (".local", "share", "fonts")
MACOS_FONT_DIR_PARTS = ("Library", "Fonts")
FONT_MARKER_FILE = "dotsync-font.json"

# Task status placeholders
STATUS_ABSENT = "absent"
STATUS_UNEXPECTED_VERSION = "unexpected"

# Configuration file names and keys
CONFIG_FILE_NAME = "dotsync.yaml"
PACKAGE_MANAGER_SECTIONS = ("pip", "cargo", "goget", "brew")

# Homebrew install prefixes probed when `brew` is not on PATH
BREW_INSTALL_DIRS = ("/usr/local", "/home/linuxbrew/.linuxbrew", "~/.linuxbrew")

# Logging configuration
LOGGER_NAME = "dotsync"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
LOG_FILE_NAME = "dotsync.log"

# Environment variable names
LOG_LEVEL_ENV_VAR = "DOTSYNC_LOG_LEVEL"
