from smdr_ingest.models.cdr_record import DEFAULT_TABLE_NAME, build_cdr_table

__all__ = ["DEFAULT_TABLE_NAME", "build_cdr_table"]
