from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    APP_NAME: str = "chaosd-pki"
    LOG_LEVEL: str = "INFO"

    # PKI layout: {PKI_PATH}/{PKI_CA_NAME}.crt|.key signs {PKI_PATH}/{PKI_NAME}.crt|.key
    PKI_PATH: str = "/etc/chaosd/pki"
    PKI_CA_NAME: str = "ca"
    PKI_NAME: str = "chaosd"

    # Leaf key algorithm: "RSA" or "ECDSA"
    PKI_KEY_ALGORITHM: str = "RSA"


settings = Settings()
