"""
Column names of the destination raw tables.

These names and their order are the on-disk contract read by downstream typing
and deduping transformers. Columns are only ever appended.
"""

# V1 (legacy raw layout)
COLUMN_NAME_AB_ID = "_airbyte_ab_id"
COLUMN_NAME_DATA = "_airbyte_data"
COLUMN_NAME_EMITTED_AT = "_airbyte_emitted_at"

# V2 (typing and deduping layout)
COLUMN_NAME_AB_RAW_ID = "_airbyte_raw_id"
COLUMN_NAME_AB_EXTRACTED_AT = "_airbyte_extracted_at"
COLUMN_NAME_AB_LOADED_AT = "_airbyte_loaded_at"
COLUMN_NAME_AB_META = "_airbyte_meta"

V1_RAW_TABLE_COLUMNS = (
    COLUMN_NAME_AB_ID,
    COLUMN_NAME_DATA,
    COLUMN_NAME_EMITTED_AT,
)

# meta must stay last: it was added to existing tables with ALTER TABLE
V2_RAW_TABLE_COLUMNS = (
    COLUMN_NAME_AB_RAW_ID,
    COLUMN_NAME_DATA,
    COLUMN_NAME_AB_EXTRACTED_AT,
    COLUMN_NAME_AB_LOADED_AT,
    COLUMN_NAME_AB_META,
)
