"""
ToeRank - segment backtest scoring and bounded strategy ranking
"""
