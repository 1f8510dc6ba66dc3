from enum import Enum


class ColumnNames(Enum):
    LEVEL = "level"

    FILE_PATH = "file_path"
    KIND = "kind"
    CONTAINER = "container"
    NAME = "name"
    PARAMETERS = "parameters"
    START_LINE = "start_line"
    END_LINE = "end_line"

    PREV_FILE_PATH = "prev_file_path"
    PREV_KIND = "prev_kind"
    PREV_CONTAINER = "prev_container"
    PREV_NAME = "prev_name"
    PREV_PARAMETERS = "prev_parameters"
    PREV_START_LINE = "prev_start_line"
    PREV_END_LINE = "prev_end_line"

    CURR_FILE_PATH = "curr_file_path"
    CURR_KIND = "curr_kind"
    CURR_CONTAINER = "curr_container"
    CURR_NAME = "curr_name"
    CURR_PARAMETERS = "curr_parameters"
    CURR_START_LINE = "curr_start_line"
    CURR_END_LINE = "curr_end_line"

    IS_MATCHED = "is_matched"
    IS_UNCHANGED = "is_unchanged"
    IS_DELETED = "is_deleted"
    IS_ADDED = "is_added"

    # git changes
    COMMIT_HASH = "commit_hash"
    CHANGE_TYPE = "change_type"
    OLD_PATH = "old_path"
    NEW_PATH = "new_path"
