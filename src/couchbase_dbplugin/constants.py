# Plugin kind reported to the host.
PLUGIN_TYPE_NAME = "couchbase"

# Users issued by the plugin live in the cluster's own user store.
AUTH_DOMAIN = "local"

# Bootstrap bounds for the administrative connection, in seconds.
CONNECT_TIMEOUT = 30.0
SERVER_CONNECT_TIMEOUT = 30.0

# Username policy: "v" + display name + role name + random id + unix time.
USERNAME_PREFIX = "v"
DISPLAY_NAME_LEN = 15
ROLE_NAME_LEN = 15
USERNAME_LEN = 100
USERNAME_SEPARATOR = "_"
USERNAME_RANDOM_LEN = 20

# Password policy.
PASSWORD_LENGTH = 20
PASSWORD_PREFIX = "A1a-"
MIN_PASSWORD_LENGTH = 10

# Placeholder substituted for the admin password in errors and logs.
REDACTED_PASSWORD = "[password]"
