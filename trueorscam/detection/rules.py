RED_FLAG_POINTS = {
    "Crypto wallet bait": 20,
    "Login + verification combo": 20,
}


def clamp(x, lo=0, hi=100):
    return max(lo, min(hi, int(round(x))))


def reasons_from_signals(url_signals: dict, red_flags=(), safe_browsing_flagged=False, page=None) -> list:
    f = url_signals or {}
    reasons = []

    if safe_browsing_flagged:
        reasons.append({"reason": "Flagged by Google Safe Browsing", "points": 60})

    # --- URL shape ---
    if f.get("has_ip_host"):
        reasons.append({"reason": "Host is an IP address", "points": 30})
    if f.get("punycode"):
        reasons.append({"reason": "Punycode host", "points": 30})
    if f.get("brand_lookalike"):
        reasons.append({"reason": f"Domain similar to brand '{f['brand_lookalike']}'", "points": 25})
    if f.get("suspicious_tld"):
        reasons.append({"reason": f"Suspicious TLD .{f.get('tld', '')}", "points": 20})
    if f.get("has_at_symbol"):
        reasons.append({"reason": "@ symbol in URL", "points": 15})
    if f.get("many_hyphens"):
        reasons.append({"reason": "Many hyphens in host", "points": 10})
    if f.get("path_length", 0) > 100:
        reasons.append({"reason": "Very long path", "points": 10})
    if f.get("scheme") == "http":
        reasons.append({"reason": "No HTTPS", "points": 5})

    # --- Page content ---
    for flag in red_flags or ():
        reasons.append({"reason": flag, "points": RED_FLAG_POINTS.get(flag, 10)})
    if page and page.get("error"):
        reasons.append({"reason": "Page not reachable", "points": 10})

    # --- Safe bonus ---
    if f.get("scheme") == "https" and not reasons:
        reasons.append({"reason": "HTTPS present (safe signal)", "points": -5})

    return reasons


def score_from_reasons(reasons):
    score = sum(r["points"] for r in reasons)
    return clamp(score)


def status_from_score(score):
    if score >= 70: return "likely scam"
    if score >= 40: return "suspicious"
    return "safe"
