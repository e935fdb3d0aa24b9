"""
Configuration constants and patterns for invoice PDF matching.
Contains regex patterns, prefix lists, limits and default paths used throughout the application.
"""

# Minimum digit count for any search key or filename token.
# Shorter numbers collide with dates, currency leftovers and page counters.
MIN_SEARCH_DIGITS = 4

# Vendor prefixes stripped from invoice numbers (first match only)
KNOWN_PREFIXES = ["DP-", "DA-", "EM-", "U-", "NF-", "NOTA-", "FAT-", "V-"]

# Installment suffix: "-001", "-02", "/01", ...
PARCEL_SUFFIX_PATTERN = r'[-/]\d{1,3}$'

# Fixed leading pattern found in some series ("1-0085583")
LEADING_SERIES_PREFIX = "1-"

# Three-digit series prefix in front of the real number ("3001351595" -> "1351595")
SERIES_PREFIX_PATTERN = r'^[123]00\d{4,}$'
SERIES_PREFIX_LENGTH = 3

# Zero-padded widths tried against the index
PAD_WIDTHS = (6, 8)

# Monetary markers; an amount following one of these is never indexed
CURRENCY_MARKERS = ["R$", "US$", "€", "$", "£", "¥", "₹"]

# Amount following a marker: digits, thousand separators and decimals
CURRENCY_AMOUNT_PATTERN = r'\s*[\d.,]+'

# Candidate index
INDEX_CACHE_TTL_SECONDS = 5 * 60
MAX_WALK_DEPTH = 10
DOCUMENT_EXTENSIONS = {".pdf"}

# Batch bounds accepted at the coordinator boundary
MAX_GROUPS = 31
MAX_IDENTIFIERS_PER_GROUP = 500
MAX_IDENTIFIER_LENGTH = 50

# Sequential destination name
SEQUENTIAL_NAME_FORMAT = "{number}- {filename}"

# Path settings
SETTINGS_FILE = "config.json"

DEFAULT_SETTINGS = {
    "base_path": "\\\\192.168.25.251\\OneDrive - SPR",
    "source_relative": "Drive - CSC\\Contabilidade\\20-ContabileFiscal\\Jota Jota\\Docs Fiscais",
    "destination_relative": "Drive - CSC\\Financeiro\\01-Fluxo\\Fluxo de Caixa\\jota jota",
}

# Allowlist of base roots the settings may point at
ALLOWED_BASE_PATHS = [
    "\\\\192.168.25.251\\OneDrive - SPR",
    "Y:\\OneDrive - SPR",
    "Z:\\OneDrive - SPR",
    "C:\\OneDrive - SPR",
]

# Group-level failure messages
SOURCE_MISSING_MESSAGE = "source folder not found"
DESTINATION_MISSING_MESSAGE = "destination folder not found"
PATH_OUTSIDE_BASE_MESSAGE = "path outside base folder"

# Per-file copy failure messages
COPY_SOURCE_MISSING = "source file not found"
COPY_DESTINATION_MISSING = "destination folder does not exist"

# Drive letters probed when no base path is configured
DRIVE_LETTERS = ["C", "D", "E", "F", "G", "H", "Y", "Z"]
