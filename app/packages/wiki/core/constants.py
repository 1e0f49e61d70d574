"""常量定义：集中维护 HTTP 状态码与目录模块使用的业务常量。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_CREATED = 201
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

ROOT_PATH = "/"
PATH_SEPARATOR = "/"

# 名称与描述的长度约束
DIRECTORY_NAME_MAX_LENGTH = 255
DIRECTORY_DESCRIPTION_MAX_LENGTH = 1000
DIRECTORY_PATH_MAX_LENGTH = 1000

# 文件系统/设备保留名称（大小写不敏感）
RESERVED_DIRECTORY_NAMES = frozenset(
    {".", "..", "CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

# 列表查询
DIRECTORY_SORT_FIELDS = ("name", "sort_order", "created_at", "updated_at")
DIRECTORY_SORT_DIRECTIONS = ("ASC", "DESC")

ROOT_BREADCRUMB_NAME = "根目录"
COPY_NAME_SUFFIX = "_副本"
