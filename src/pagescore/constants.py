# src/pagescore/constants.py
"""Centralized constants for the page scoring engine.

This module contains magic numbers and fixed vocabularies used across
multiple modules. For user-configurable thresholds, see config.py and
AnalysisThresholds.
"""

# =============================================================================
# Content Constants
# =============================================================================

# Flesch Reading Ease formula components (for documentation)
FLESCH_FORMULA = "206.835 - 1.015 * (words/sentences) - 84.6 * (syllables/words)"

# Grade level mapping for Flesch scores
GRADE_MAPPING = {
    (90, 100): "5th Grade",
    (80, 89): "6th Grade",
    (70, 79): "7th Grade",
    (60, 69): "8-9th Grade",
    (50, 59): "10-12th Grade",
    (30, 49): "College",
    (0, 29): "College Graduate",
}

# Minimum token length to be considered a keyword
MIN_KEYWORD_LENGTH = 2

# A keyword must occur more than this many times to be reported
MIN_KEYWORD_OCCURRENCES = 1

# Number of top keywords kept in the density map
TOP_KEYWORDS_COUNT = 20

# CJK share of the text above which the page language is guessed as Chinese
CJK_LANGUAGE_RATIO = 0.3

# Subtrees removed before measuring visible text
NON_CONTENT_TAGS = ('script', 'style', 'noscript')

# Common English and Chinese words filtered out of keyword density
STOP_WORDS = frozenset({
    'the', 'be', 'to', 'of', 'and', 'a', 'in', 'that', 'have', 'i',
    'it', 'for', 'not', 'on', 'with', 'he', 'as', 'you', 'do', 'at',
    'this', 'but', 'his', 'by', 'from', 'they', 'we', 'say', 'her', 'she',
    'or', 'an', 'will', 'my', 'one', 'all', 'would', 'there', 'their',
    'what', 'so', 'up', 'out', 'if', 'about', 'who', 'get', 'which', 'go',
    'me', 'when', 'make', 'can', 'like', 'no', 'just', 'him', 'know',
    'into', 'your', 'some', 'could', 'them', 'than', 'then', 'now', 'only',
    'its', 'over', 'also', 'after', 'how', 'our', 'even', 'any', 'these',
    'us', 'is', 'was', 'are', 'been', 'has', 'had', 'were', 'did', 'may',
    'should', 'am', 'more', 'very', 'such', 'here', 'where', 'why',
    '的', '了', '在', '是', '我', '有', '和', '就', '不', '人', '都', '一',
    '上', '也', '很', '到', '说', '要', '去', '你', '会', '着', '没有',
    '看', '好', '自己', '这', '那', '与', '及', '或', '等', '而',
})


# =============================================================================
# Image Constants
# =============================================================================

# Recognized image formats, detected from the URL path extension
IMAGE_FORMATS = ('jpg', 'jpeg', 'png', 'gif', 'webp', 'avif', 'svg', 'bmp', 'ico')

# Images with a known size above this many bytes are reported as oversized
LARGE_IMAGE_BYTES = 500_000

# Alt text strictly between these lengths counts as descriptive
GOOD_ALT_MIN_LENGTH = 10
GOOD_ALT_MAX_LENGTH = 125

# Relative image paths shorter than this are treated as suspicious
MIN_RELATIVE_SRC_LENGTH = 5


# =============================================================================
# Link Constants
# =============================================================================

# Hrefs that never lead anywhere
PLACEHOLDER_HREFS = ('#', 'javascript:void(0)', 'javascript:void(0);', 'javascript:;')

LOCALHOST_NAMES = ('localhost', '127.0.0.1', '0.0.0.0')


# =============================================================================
# Scoring Constants
# =============================================================================

# Ordering rank used when sorting issues, highest first
SEVERITY_RANK = {
    'critical': 4,
    'high': 3,
    'medium': 2,
    'low': 1,
}

# Share of the overall score contributed by each category
CATEGORY_WEIGHTS = {
    'technical': 0.40,
    'content': 0.35,
    'performance': 0.25,
}

# Multiplier applied to a failed critical rule's score
CRITICAL_PENALTY_MULTIPLIER = 0.8

# A category mean at or above this threshold earns the bonus
BONUS_THRESHOLD = 90.0
BONUS_MULTIPLIER = 1.1

# Category improvements at or below this many points are not reported
MIN_IMPROVEMENT_POINTS = 5

# Letter grades, checked top down
GRADE_THRESHOLDS = (
    (90, 'A'),
    (80, 'B'),
    (70, 'C'),
    (60, 'D'),
)


# =============================================================================
# Cache and Monitor Constants
# =============================================================================

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_CACHE_MAX_SIZE = 50

# Hex characters kept from the sha256 fingerprint
FINGERPRINT_LENGTH = 16

DEFAULT_DEBOUNCE_SECONDS = 1.0

# Relative text length change treated as a content change
TEXT_LENGTH_CHANGE_RATIO = 0.05


# =============================================================================
# Fetcher Constants
# =============================================================================

DEFAULT_USER_AGENT = "PageScore-Bot/1.0"
DEFAULT_TIMEOUT_SECONDS = 30
