from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = ""

    # Blockchain (Base mainnet)
    RPC_URL: str = "https://mainnet.base.org"
    CHAIN_ID: int = 8453
    EXECUTOR_PRIVATE_KEY: str = ""

    # Contract addresses
    DCA_EXECUTOR_ADDRESS: str = ""                    # aggregator executor (executeSwap)
    FUNDING_TOKEN_ADDRESS: str = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"  # USDC on Base
    FUNDING_TOKEN_DECIMALS: int = 6

    # Ledger executor (executeDCAPlan); plans of that variant fail while unset
    DCA_PLAN_EXECUTOR_ADDRESS: str = ""

    # Swap aggregator (1inch)
    ONEINCH_API_KEY: str = ""
    ONEINCH_BASE_URL: str = "https://api.1inch.dev/swap/v6.0"
    ONEINCH_REFERRER: str = "0xe42c136730a9cfefb5514d4d3d06eb27baaf3f08"

    # Market data
    GECKOTERMINAL_BASE_URL: str = "https://api.geckoterminal.com/api/v2/networks/base/tokens"

    # Execution deadlines (seconds)
    DCA_PLAN_TIMEOUT_SECONDS: int = 180
    DCA_PASS_TIMEOUT_SECONDS: int = 840
    DCA_RECEIPT_TIMEOUT_SECONDS: int = 120

    # Application
    API_SECRET_KEY: str = "dev-secret-key"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def has_signer(self) -> bool:
        return bool(self.EXECUTOR_PRIVATE_KEY)


settings = Settings()
