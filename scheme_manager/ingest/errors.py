# ==============================================================================
# scheme_manager/ingest/errors.py
# ------------------------------------------------------------------------------
# Whole-file rejections raised inside the upload pipeline. The public
# process_* functions catch these and report them as data.
# ==============================================================================


class FileStructureError(ValueError):
    """The file cannot be processed at all (bad layout, missing columns)."""


class SizeLimitError(FileStructureError):
    """The file holds more data rows than the configured cap."""

    def __init__(self, record_count, limit):
        self.record_count = record_count
        self.limit = limit
        super().__init__(
            f"File contains {record_count} records. Maximum {limit:,} records allowed "
            f"for optimal performance. Please split your data into smaller files."
        )
