"""Columnar store error types."""

from __future__ import annotations


class ColumnarSchemaError(ValueError):
    """Raised when records do not match the target table schema."""

    @classmethod
    def unknown_table(cls, table: str) -> ColumnarSchemaError:
        """Return an error for inserts into an undeclared table."""
        return cls(f"unknown columnar table: {table}")

    @classmethod
    def unknown_columns(
        cls, table: str, columns: set[str]
    ) -> ColumnarSchemaError:
        """Return an error for record keys absent from the table."""
        listed = ", ".join(sorted(columns))
        return cls(f"columns not in table {table}: {listed}")

    @classmethod
    def naive_datetime(cls) -> ColumnarSchemaError:
        """Return an error for timezone-naive datetime values."""
        return cls("datetime values must be timezone aware")


class ColumnarConfigError(RuntimeError):
    """Raised when the columnar store connection is not configured."""

    @classmethod
    def missing_url(cls) -> ColumnarConfigError:
        """Return an error when no store URL is configured."""
        return cls("TRIBUTARY_COLUMNAR_URL is required for the columnar store")
