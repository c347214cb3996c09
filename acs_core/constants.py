# acs_core/constants.py

CONFIG_FILE = "/etc/access-control-system.conf"

# ----- defaults for variables from the config file -----
SSH_LOGFILE = "/var/log/auth.log"
SSH_KEYFILE = "/home/keyholder/.ssh/authorized_keys"
DATABASE = "/var/lib/access-control-system"
STATEDIR = "/run/access-control-system/"
SSHD_NAME = "sshd"
# Stock OpenSSH with privilege separation logs "Accepted publickey" from the
# monitor, the parent of the nearest sshd. Such deployments need
# `sshd-monitor-hop = yes`.
SSHD_MONITOR_HOP = False
CLOCK_SLACK_SECONDS = 2
STORAGE_PROVIDER = "sqlite"
LOG_LEVEL = "WARNING"

ENV_PREFIX = "ACS_"

# ----- state directory layout -----
STATE_KEYHOLDER_ID = "keyholder-id"
STATE_KEYHOLDER_NAME = "keyholder-name"
STATE_STATUS = "status"
STATE_STATUS_NEXT = "status-next"
STATE_MESSAGE = "message"
STATE_OPEN_DOOR = "open-door"

STATEDIR_MODE = 0o775

# mode value stored for commands that do not change the space status
NO_MODE = -1
