"""Curated CUSIP to ticker mappings.

Entries here win over name matching. They cover multi-class shares,
spin-offs, renamed issuers and ETFs whose filed issuer name is a generic
sponsor name. ``name`` overrides the displayed security name.
"""
from __future__ import annotations

from typing import Dict, NamedTuple, Optional


class ManualEntry(NamedTuple):
    ticker: str
    exchange: str
    name: Optional[str] = None


MANUAL_CUSIP_MAP: Dict[str, ManualEntry] = {
    # Mega-cap technology
    "037833100": ManualEntry("AAPL", "NAS"),
    "594918104": ManualEntry("MSFT", "NAS"),
    "02079K305": ManualEntry("GOOG", "NAS"),
    "02079K107": ManualEntry("GOOGL", "NAS"),
    "023135106": ManualEntry("AMZN", "NAS"),
    "30303M102": ManualEntry("META", "NAS"),
    "67066G104": ManualEntry("NVDA", "NAS"),
    "88160R101": ManualEntry("TSLA", "NAS"),
    # Financials
    "084670702": ManualEntry("BRK-B", "NYS"),
    "46625H100": ManualEntry("JPM", "NYS"),
    "060505104": ManualEntry("BAC", "NYS"),
    "92826C839": ManualEntry("V", "NYS"),
    "57636Q104": ManualEntry("MA", "NYS"),
    "172967424": ManualEntry("C", "NYS"),
    "38141G104": ManualEntry("GS", "NYS"),
    "585515101": ManualEntry("MCO", "NYS"),
    "00724F101": ManualEntry("AXP", "NYS"),
    "949746101": ManualEntry("WFC", "NYS"),
    "02005N100": ManualEntry("ALLY", "NYS"),
    "14913Q104": ManualEntry("COF", "NYS"),
    "14040H105": ManualEntry("COF", "NYS"),
    "896522109": ManualEntry("TFC", "NYS"),
    "808513105": ManualEntry("SCHW", "NYS"),
    "09247X101": ManualEntry("BLK", "NYS"),
    "210518100": ManualEntry("CB", "NYS"),
    "G0403H108": ManualEntry("AON", "NYS"),
    "47233W109": ManualEntry("JEF", "NYS"),
    "552953101": ManualEntry("MKTX", "NAS"),
    "45866F104": ManualEntry("ICE", "NYS"),
    "617446448": ManualEntry("MSCI", "NYS"),
    "83406F102": ManualEntry("SOFI", "NAS"),
    "337738108": ManualEntry("FI", "NYS"),  # Fiserv, formerly FISV
    "31620M106": ManualEntry("FIS", "NYS"),
    "465562106": ManualEntry("ITUB", "NYS"),
    "G98239109": ManualEntry("XP", "NAS"),
    "G6683N103": ManualEntry("NU", "NYS"),
    # Healthcare
    "478160104": ManualEntry("JNJ", "NYS"),
    "91324P102": ManualEntry("UNH", "NYS"),
    "58933Y105": ManualEntry("MRK", "NYS"),
    "717081103": ManualEntry("PFE", "NYS"),
    "00287Y109": ManualEntry("ABBV", "NYS"),
    "002824100": ManualEntry("ABT", "NYS"),
    "532457108": ManualEntry("LLY", "NYS"),
    "88579Y101": ManualEntry("TMO", "NYS"),
    "219350105": ManualEntry("COR", "NYS"),
    "11135F101": ManualEntry("BMY", "NYS"),
    "256135203": ManualEntry("DVA", "NYS"),
    "404119982": ManualEntry("HCA", "NYS"),
    "018581108": ManualEntry("ALGN", "NAS"),
    "881624209": ManualEntry("TEVA", "NYS"),
    "925050106": ManualEntry("VRNA", "NAS"),
    "071705107": ManualEntry("BLCO", "NYS"),
    "071734107": ManualEntry("BHC", "NYS"),
    "L01800108": ManualEntry("ALVO", "NAS"),
    "L01800116": ManualEntry("ALVOW", "NAS"),  # Alvotech warrant
    # Consumer, energy and materials
    "742718109": ManualEntry("PG", "NYS"),
    "191216100": ManualEntry("KO", "NYS"),
    "713448108": ManualEntry("PEP", "NAS"),
    "931142103": ManualEntry("WMT", "NYS"),
    "22160K105": ManualEntry("COST", "NAS"),
    "500754106": ManualEntry("KHC", "NAS"),
    "49456B101": ManualEntry("KDP", "NAS"),
    "549271106": ManualEntry("LOW", "NYS"),
    "125523100": ManualEntry("CMG", "NYS"),
    "579780206": ManualEntry("MCD", "NYS"),
    "74762E102": ManualEntry("QSR", "NYS"),
    "N7749L103": ManualEntry("NKE", "NYS"),
    "872589106": ManualEntry("TJX", "NYS"),
    "74967X103": ManualEntry("RH", "NYS"),
    "718172109": ManualEntry("PM", "NYS"),
    "722304102": ManualEntry("PDD", "NAS"),
    "N4732M103": ManualEntry("JBSAY", "NYS"),
    "30231G102": ManualEntry("XOM", "NYS"),
    "166764100": ManualEntry("CVX", "NYS"),
    "20825C104": ManualEntry("COP", "NYS"),
    "674599105": ManualEntry("OXY", "NYS"),
    "165167735": ManualEntry("EXE", "NAS"),
    "165167180": ManualEntry("EXE/WS", "NYS"),  # Expand Energy warrant
    "G7553X106": ManualEntry("KRSP", "NYS"),
    "G7553X114": ManualEntry("KRSP/WS", "NYS"),
    "67011E106": ManualEntry("NUE", "NYS"),
    "185899101": ManualEntry("CLF", "NYS"),
    "020398707": ManualEntry("AII", "NYS"),
    "26969P108": ManualEntry("EXP", "NYS"),
    "546347105": ManualEntry("LPX", "NYS"),
    "23331A109": ManualEntry("DHI", "NYS"),
    "526057104": ManualEntry("LEN", "NYS"),  # Lennar, not Liberty Global
    "526057302": ManualEntry("LEN", "NYS"),
    # Industrials, transport and telecom
    "539830109": ManualEntry("LMT", "NYS"),
    "929740108": ManualEntry("WAB", "NYS"),
    "910047109": ManualEntry("UAL", "NAS"),
    "02376R102": ManualEntry("AAL", "NAS"),
    "95082P105": ManualEntry("WCC", "NYS"),
    "87266J104": ManualEntry("TPIC", "NAS"),
    "00206R102": ManualEntry("T", "NYS"),
    "92343V104": ManualEntry("VZ", "NYS"),
    "879433829": ManualEntry("TDS", "NYS"),
    "171340102": ManualEntry("CHTR", "NAS"),
    "829933100": ManualEntry("SIRI", "NAS"),
    "254687106": ManualEntry("DIS", "NYS"),
    "345370860": ManualEntry("FOXA", "NAS"),
    "345370878": ManualEntry("FOX", "NAS"),
    "651639106": ManualEntry("NWSA", "NAS"),
    "651639304": ManualEntry("NWS", "NAS"),
    "812215200": ManualEntry("SEG", "NYS"),
    # Technology and internet
    "458140100": ManualEntry("INTC", "NAS"),
    "79466L302": ManualEntry("CRM", "NYS"),
    "68389X105": ManualEntry("ORCL", "NYS"),
    "035420505": ManualEntry("ANSS", "NAS"),
    "040413106": ManualEntry("ANET", "NYS"),
    "29786A106": ManualEntry("EQIX", "NAS"),
    "29444U700": ManualEntry("EQIX", "NAS"),
    "74340W103": ManualEntry("PSA", "NYS"),
    "92536U106": ManualEntry("VRSN", "NAS"),
    "22788C105": ManualEntry("CRWD", "NAS"),
    "22266T109": ManualEntry("CPNG", "NYS"),  # Coupang, not CrowdStrike
    "98980G102": ManualEntry("ZS", "NAS"),
    "00507V109": ManualEntry("ABNB", "NAS"),
    "00971T101": ManualEntry("AFRM", "NAS"),
    "09260D107": ManualEntry("BKNG", "NAS"),
    "40434L105": ManualEntry("HLT", "NYS"),
    "449489103": ManualEntry("HHH", "NYS"),
    "874039100": ManualEntry("TSM", "NYS"),
    "81141R100": ManualEntry("SE", "NYS"),
    "861012102": ManualEntry("STM", "NYS"),
    "042068205": ManualEntry("ARM", "NAS"),
    "G3643J108": ManualEntry("FLUT", "NYS"),
    "36165L108": ManualEntry("GDS", "NAS"),
    "35969L108": ManualEntry("YMM", "NYS"),
    "86959K105": ManualEntry("SWVL", "NAS"),
    "03769M106": ManualEntry("APHA", "NAS"),
    "71654V101": ManualEntry("PDCO", "NAS"),
    "075887109": ManualEntry("BN", "NYS"),
    "11271J107": ManualEntry("BN", "NYS"),  # Brookfield Corp, not Blackstone
    # Japanese trading houses, listed in Tokyo
    "J4578C101": ManualEntry("8058", "TSE"),
    "J4578E107": ManualEntry("8031", "TSE"),
    "J3504G103": ManualEntry("8001", "TSE"),
    # Liberty family: tracking stocks and spin-offs
    "530909100": ManualEntry("LLYVA", "NAS"),
    "530909308": ManualEntry("LLYVK", "NAS"),
    "531229755": ManualEntry("FWONK", "NAS"),
    "531229854": ManualEntry("FWONK", "NAS"),  # pre-split CUSIP
    "531229722": ManualEntry("LLYVK", "NAS"),  # former Liberty Live tracking C
    "531229748": ManualEntry("LLYVA", "NAS"),  # former Liberty Live tracking A
    "G9001E102": ManualEntry("LILA", "NAS"),
    "G9001E128": ManualEntry("LILAK", "NAS"),
    "G5784H106": ManualEntry("LSXMK", "NAS"),
    "G5785G107": ManualEntry("LNG", "NYS"),
    # ETFs filed under their sponsor's name
    "464287655": ManualEntry("EEM", "AMS", "iShares MSCI Emerging Markets ETF"),
    "464287234": ManualEntry("EEM", "AMS", "iShares MSCI Emerging Markets ETF"),
    "464287200": ManualEntry("IVV", "AMS", "iShares Core S&P 500 ETF"),
    "464286400": ManualEntry("EWZ", "AMS", "iShares MSCI Brazil ETF"),
    "46434V613": ManualEntry("AAXJ", "NAS", "iShares MSCI All Country Asia ex Japan ETF"),
    "464287432": ManualEntry("IBIT", "NAS", "iShares Bitcoin Trust ETF"),
    "46120E602": ManualEntry("IWM", "AMS", "iShares Russell 2000 ETF"),
    "78462F103": ManualEntry("SPY", "AMS", "SPDR S&P 500 ETF"),
    "78409V104": ManualEntry("SPY", "AMS", "SPDR S&P 500 ETF"),
    "81369Y605": ManualEntry("XLF", "AMS", "Financial Select Sector SPDR Fund"),
    "81369Y886": ManualEntry("XLB", "AMS", "Materials Select Sector SPDR Fund"),
    "81369Y803": ManualEntry("XLE", "AMS", "Energy Select Sector SPDR Fund"),
    "81369Y704": ManualEntry("XLI", "AMS", "Industrial Select Sector SPDR Fund"),
    "81369Y100": ManualEntry("XLV", "AMS", "Health Care Select Sector SPDR Fund"),
    "78464A870": ManualEntry("BWX", "AMS", "SPDR Bloomberg Intl Treasury Bond ETF"),
    "78464A698": ManualEntry("BWX", "AMS", "SPDR Bloomberg Intl Treasury Bond ETF"),
    "78464A797": ManualEntry("KBE", "AMS", "SPDR S&P Bank ETF"),
    "46137V357": ManualEntry("RSP", "AMS", "Invesco S&P 500 Equal Weight ETF"),
    "46090E103": ManualEntry("QQQ", "NAS", "Invesco QQQ Trust"),
    "37950E259": ManualEntry("ARGT", "AMS", "Global X MSCI Argentina ETF"),
}


# Sponsor names shared by many products; they never identify a single security.
GENERIC_ISSUER_BLACKLIST = (
    "ISHARES",
    "ISHARES TR",
    "ISHARES TRUST",
    "INVESCO",
    "INVESCO EXCHANGE TRADED FD",
    "SELECT SECTOR SPDR",
    "SELECT SECTOR SPDR TR",
    "SPDR",
    "SPDR GOLD",
    "SPDR SERIES TRUST",
    "SPDR SERIES TR",
    "VANGUARD",
    "VANGUARD INDEX FDS",
    "VANGUARD INTL EQUITY INDEX FDS",
    "PROSHARES",
    "PROSHARES TR",
    "WISDOMTREE",
    "WISDOMTREE TR",
    "VANECK",
    "VANECK ETF TR",
    "SCHWAB STRATEGIC TR",
    "FIRST TR",
    "GLOBAL X FDS",
    "ARK ETF TR",
    "DIREXION",
)


__all__ = ["GENERIC_ISSUER_BLACKLIST", "MANUAL_CUSIP_MAP", "ManualEntry"]
