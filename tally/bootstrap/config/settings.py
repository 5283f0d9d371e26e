from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict, YamlConfigSettingsSource


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="Bind address for publishers and readers.",
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port for PUT/GET requests.",
            default=4567,
            ge=0,
            le=65535
        )
    ]

    backlog: Annotated[
        int,
        Field(
            description="Maximum number of pending TCP connections.",
            default=128
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for graceful shutdown.",
            default=5.0
        )
    ]

    limit_concurrency: Annotated[
        int,
        Field(
            description=(
                "Maximum number of requests handled at the same time.\n"
                "Further complete requests wait for a free slot."
            ),
            default=1024,
            gt=0
        )
    ]

    max_buffer_size: Annotated[
        int,
        Field(
            description=(
                "Maximum size of a request line plus headers.\n"
                "If exceeded, the connection is closed."
            ),
            default=64 * 1024,
            gt=0
        )
    ]

    max_message_size: Annotated[
        int,
        Field(
            description=(
                "Maximum allowed Content-Length of a request body.\n"
                "If exceeded, the connection is closed."
            ),
            default=1 * 1024 * 1024,
            gt=0
        )
    ]


class ExpirySettings(BaseModel):
    threshold_ms: Annotated[
        int,
        Field(
            description=(
                "Age in milliseconds after which a reading is evicted.\n"
                "The age is measured from the last publish of its identity."
            ),
            default=30_000,
            gt=0
        )
    ]

    interval: Annotated[
        float,
        Field(
            description=(
                "Seconds between two background eviction passes.\n"
                "Fetches also evict inline, so this only bounds how long an\n"
                "expired reading can stay in the snapshot file."
            ),
            default=2.0,
            gt=0
        )
    ]


class StorageSettings(BaseModel):
    snapshot_path: Annotated[
        Path,
        Field(
            description=(
                "File holding the snapshot of the store (JSON array of readings).\n"
                "Read once at startup, rewritten after every change."
            ),
            default=Path("server_data.json")
        )
    ]


class TallyConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TALLY_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    server: Annotated[
        ServerSettings,
        Field(
            description=(
                "Listening socket and runtime limits of the aggregation server."
            ),
            default_factory=ServerSettings
        )
    ]

    expiry: Annotated[
        ExpirySettings,
        Field(
            description="Expiry threshold and background sweep interval.",
            default_factory=ExpirySettings
        )
    ]

    storage: Annotated[
        StorageSettings,
        Field(
            description="Location of the durable snapshot.",
            default_factory=StorageSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, YamlConfigSettingsSource(settings_cls))


def load_config(configfile: Path | None = None) -> TallyConfig:
    """
    Build the configuration from the environment and an optional YAML file.

    Environment variables (TALLY_SERVER__PORT, TALLY_EXPIRY__THRESHOLD_MS, ...)
    take precedence over the file.
    """
    class FileTallyConfig(TallyConfig):
        model_config = SettingsConfigDict(yaml_file=configfile)

    try:
        return FileTallyConfig()
    except ValidationError as exc:
        raise SystemExit(f"[config] Invalid configuration:\n{exc}")
