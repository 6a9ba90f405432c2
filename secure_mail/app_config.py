# secure_mail/app_config.py

from pathlib import Path
import os

APP_NAME = "secure-mail"

# AES-GCM
AES_KEY_BYTES = 32         # AES-256-GCM
GCM_NONCE_BYTES = 12       # 96-bit random nonce, stored next to its ciphertext
GCM_TAG_BYTES = 16

# Key material (see crypto/keys.py for the resolution order)
ENV_KEY = "SECURE_MAIL_KEY"                # base64 of 32 raw bytes
ENV_PASSPHRASE = "SECURE_MAIL_PASSPHRASE"  # Scrypt-derived key

SCRYPT_N = 2 ** 15
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_SALT = b"secure-mail/v1/config-key"

# Config files
LOCAL_CONFIG_NAME = "secure-mail.json"     # relative to the working directory
GLOBAL_CONFIG_NAME = "config.json"         # inside the platform config dir
ENV_GLOBAL_DIR = "SECURE_MAIL_GLOBAL_DIR"

CONFIG_FILE_MODE = 0o600

# SMTP
ENV_SMTP_TIMEOUT = "SECURE_MAIL_SMTP_TIMEOUT"
DEFAULT_SMTP_TIMEOUT_SECONDS = 30.0
SMTPS_PORT = 465


def global_dir_override() -> Path | None:
    value = os.environ.get(ENV_GLOBAL_DIR)
    return Path(value).expanduser() if value else None
