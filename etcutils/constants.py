# Name of the environment variable naming a config file
ETCUTILS_CONFIG_ENV = "ETCUTILS_CONFIG"

# Database files, relative to the configured root
PASSWD_FILE = "etc/passwd"
GROUP_FILE = "etc/group"
SHADOW_FILE = "etc/shadow"
GSHADOW_FILE = "etc/gshadow"

# Lock file, at the path lckpwdf(3) uses
LOCK_FILE = "etc/.pwd.lock"
LOCK_FILE_MODE = 0o600
LOCK_TIMEOUT = 15
LOCK_POLL_INTERVAL = 0.1

# Modes applied on write
PUBLIC_FILE_MODE = 0o644
SECRET_FILE_MODE = 0o640

# Appended to the database path to name its backup
BACKUP_SUFFIX = "-"

FIELD_SEP = ":"
LIST_SEP = ","
COMMENT_PREFIX = "#"

# Database files are read and written as UTF-8; bytes that are not valid
# UTF-8 pass through unchanged as lone surrogates
FILE_ENCODING = "utf-8"
FILE_ERRORS = "surrogateescape"

# Highest id handed out by next_uid / next_gid (65534 is nobody)
MAX_ID = 65533

# shadow(5): max_days of 99999 means the password never expires
NEVER_EXPIRES = 99999
