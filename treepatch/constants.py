"""treepatch 使用的常量定义。"""

DEFAULT_CONFIG_FILE = "treepatch.yaml"
DEFAULT_CONFIG_SAMPLE = "treepatch.sample.yaml"

GAME_MANIFEST = "GameManifest.txt"
LAUNCHPAD_MANIFEST = "LaunchpadManifest.txt"
OLD_MANIFEST_SUFFIX = ".old"
GAME_CHECKSUM = "GameManifest.checksum"
LAUNCHPAD_CHECKSUM = "LaunchpadManifest.checksum"

DELETED_MANIFEST = "DeletedManifest.txt"
DELETED_CHECKSUM = "DeletedManifest.checksum"

STAGING_DIR_NAME = "patch"
ARCHIVE_NAME = "patch.zip"
