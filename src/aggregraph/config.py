"""Configuration management for aggregraph"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Aggregation
    supernode_prefix: str = "supernodes/"
    catch_all_label: str = "Null"
    lineage_max_depth: int = 5
    fuzzy_prefix_length: int = 3

    # Reject link lists that reference ids missing from their node list
    validate_inputs: bool = True

    slow_request_threshold: float = 1.0

    model_config = {
        "env_prefix": "AGGREGRAPH_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
