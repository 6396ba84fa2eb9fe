from inventory_engine.config.settings import (
    EngineSettings,
    FORECAST_SEASONAL_FACTORS,
    STOCK_SEASONALITY_FACTORS,
    configure_logging,
)

__all__ = [
    'EngineSettings',
    'FORECAST_SEASONAL_FACTORS',
    'STOCK_SEASONALITY_FACTORS',
    'configure_logging',
]
