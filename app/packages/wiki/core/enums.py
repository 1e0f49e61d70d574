"""枚举定义：约束目录模块的错误类别。"""

from enum import Enum


class DirectoryErrorKind(str, Enum):
    """目录操作失败的分类，调用方据此区分处理方式。"""

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    PARENT_NOT_FOUND = "PARENT_NOT_FOUND"
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
    TARGET_PARENT_NOT_FOUND = "TARGET_PARENT_NOT_FOUND"
    INVALID_PARENT = "INVALID_PARENT"
    INVALID_TARGET = "INVALID_TARGET"
    INVALID_DIRECTORY_PARENT = "INVALID_DIRECTORY_PARENT"
    CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"
    PATH_EXISTS = "PATH_EXISTS"
    NOT_EMPTY = "NOT_EMPTY"
    STORAGE_FAILURE = "STORAGE_FAILURE"
