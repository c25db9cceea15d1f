"""Router package exports."""
from . import cache, commissions, diagnostic, distributors, network, periods, reports, rollover, simulator

__all__ = [
	"cache",
	"commissions",
	"diagnostic",
	"distributors",
	"network",
	"periods",
	"reports",
	"rollover",
	"simulator",
]
