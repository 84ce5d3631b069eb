"""Schedule engine and exchange-rate cache behind the calculator widgets."""
