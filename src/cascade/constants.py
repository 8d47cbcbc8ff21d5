APP_NAME = "cascade"
ENV_PREFIX = "CASCADE_"

ENV_DESCRIPTOR_NAME = "environ"
FLAG_DESCRIPTOR_NAME = "flag"

RETRY_INTERVAL_SECONDS = 1.0
