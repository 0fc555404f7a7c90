# config.py
"""
Application configuration constants for Image Stitcher
"""

# Grid defaults
DEFAULT_ROWS = 2
DEFAULT_COLUMNS = 2
DEFAULT_CELL_SIZE = 300
DEFAULT_GAP = 0
DEFAULT_FIT_MODE = "contain"
DEFAULT_SIZE_MODE = "fixed"

# Auto size never shrinks a cell below this many pixels on either axis
AUTO_SIZE_MIN_DIMENSION = 100

# Bounds applied to operator supplied cell sizes
MIN_CELL_SIZE = 50
MAX_CELL_SIZE = 2000

# Layout presets offered to the operator ("<rows>x<cols>")
LAYOUT_PRESETS = ["1x2", "2x1", "2x2", "1x3", "3x1", "3x3"]

# Rendering
BACKGROUND_COLOR = "#ffffff"
GRID_LINE_COLOR = "#e0e0e0"
GRID_LINE_WIDTH = 1

# Decoder settings
MAX_CONCURRENT_DECODES = 3

# Supported image formats
SUPPORTED_IMAGE_FORMATS = ['png', 'jpg', 'jpeg', 'bmp', 'webp', 'gif', 'tiff']

# Export options
QUALITY_MIN = 0
QUALITY_MAX = 100
QUALITY_DEFAULT = 92
EXPORT_FILENAME_PREFIX = "stitched"
EXPORT_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"

# Batch defaults
BATCH_PLACEHOLDER = "{n}"
BATCH_DEFAULT_TARGET_WIDTH = 800
BATCH_DEFAULT_TARGET_HEIGHT = 600
BATCH_OUTPUT_SUFFIX = "-merged"

# Logging
LOG_MAX_BYTES = 1_048_576
LOG_BACKUP_COUNT = 5
