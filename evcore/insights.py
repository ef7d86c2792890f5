"""Insight sentences for each view.

Every number quoted here comes straight from the facts a view computed, so
the text always agrees with the chart it accompanies.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

Facts = Mapping[str, Any]


def _money(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def _plural(n: int, word: str, many: str) -> str:
    return f"{n} {word if n == 1 else many}"


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _first_max(entries: List[Dict[str, Any]], field: str) -> Dict[str, Any]:
    return max(entries, key=lambda e: e[field])


def top_makes_by_city(facts: Facts) -> List[str]:
    cities, makes = facts["cities"], facts["makes"]
    lines = [
        f"{makes[0]['label']} is the most registered make across the top {_plural(len(cities), 'city', 'cities')}, "
        f"with {makes[0]['count']} vehicles."
    ]
    if len(makes) > 1:
        lines.append(f"{makes[1]['label']} follows with {makes[1]['count']} vehicles in the same cities.")
    lines.append(f"{cities[0]['label']} leads all cities with {cities[0]['count']} registered vehicles.")
    if len(makes) > 2:
        rest = sum(m["count"] for m in makes[2:])
        lines.append(f"The remaining {_plural(len(makes) - 2, 'make', 'makes')} account for {rest} vehicles in these cities.")
    return lines


def avg_range_by_make(facts: Facts) -> List[str]:
    e = facts["entries"]
    lines = [f"The top EV make, {e[0]['label']}, has an average electric range of {e[0]['average']:.2f} miles."]
    if len(e) > 1:
        lines.append(f"The second best performing make is {e[1]['label']}, with an average range of {e[1]['average']:.2f} miles.")
        lines.append(f"The top two makes together contribute an average electric range of {e[0]['average'] + e[1]['average']:.2f} miles.")
    else:
        lines.append(
            f"Average ranges were computed for {_plural(facts['groups'], 'make', 'makes')} "
            f"from {facts['total']} vehicles with a reported range."
        )
    if len(e) > 2:
        rest = sum(x["average"] for x in e[2:])
        lines.append(f"The remaining {_plural(len(e) - 2, 'make', 'makes')} have a combined average range of {rest:.2f} miles.")
    return lines


def base_msrp_over_years(facts: Facts) -> List[str]:
    e = facts["entries"]
    first, last = e[0], e[-1]
    lines = [f"In {first['label']}, the average base MSRP was {_money(first['average'])}."]
    if len(e) > 1:
        change = last["average"] - first["average"]
        pct = change / first["average"] * 100
        direction = "rose" if change > 0 else "fell" if change < 0 else "held steady"
        lines.append(
            f"By {last['label']}, the average base MSRP {direction} to {_money(last['average'])}, "
            f"a change of {_money(change)} ({pct:.2f}%)."
        )
    lines.append(
        f"Base MSRP is reported for {facts['total']} vehicles across {_plural(len(e), 'model year', 'model years')}."
    )
    return lines


def range_distribution(facts: Facts) -> List[str]:
    e = facts["entries"]
    top = _first_max(e, "count")
    last = e[-1]
    return [
        f"There are a total of {facts['total']} vehicles categorized by their electric range.",
        f"The most common range bucket is {top['label']} miles, which includes {top['count']} vehicles ({top['share']:.2f}%).",
        f"{last['count']} vehicles ({last['share']:.2f}%) fall in the open-ended {last['label']} bucket.",
    ]


def ev_adoption(facts: Facts) -> List[str]:
    e = facts["entries"]
    peak = _first_max(e, "count")
    first, last = e[0], e[-1]
    lines = [
        f"There are a total of {facts['total']} EVs registered across model years {first['label']} to {last['label']}.",
        f"The year with the highest adoption was {peak['label']}, with {peak['count']} registrations ({peak['share']:.2f}% of the total).",
    ]
    if len(e) > 1:
        lines.append(f"The latest model year, {last['label']}, has {_plural(last['count'], 'registration', 'registrations')}.")
    return lines


def most_common_models(facts: Facts) -> List[str]:
    e = facts["entries"]
    top = e[0]
    lines = [
        f"The most common model in the dataset is {top['label']}, which accounts for {top['count']} vehicles, "
        f"representing {top['share']:.2f}% of the total vehicle count."
    ]
    if len(e) > 1:
        second = e[1]
        lines.append(
            f"The second-most common model, {second['label']}, has {second['count']} vehicles, "
            f"{top['count'] - second['count']} fewer than {top['label']}."
        )
    if len(e) > 2:
        last = e[-1]
        lines.append(f"The {_ordinal(len(e))} most common model, {last['label']}, has just {_plural(last['count'], 'vehicle', 'vehicles')}.")
    lines.append(
        f"Overall, the top {_plural(len(e), 'model', 'models')} represent {sum(x['share'] for x in e):.2f}% of the vehicles."
    )
    return lines


def cafv_eligibility(facts: Facts) -> List[str]:
    eligible, other = facts["entries"]
    return [
        f"Out of {facts['total']} vehicles, {eligible['count']} are eligible for Clean Alternative Fuel Vehicle (CAFV) "
        f"status, {eligible['share']:.1f}% of all vehicles in the dataset.",
        f"The remaining {other['count']} vehicles, or {100 - eligible['share']:.1f}%, are not eligible or have not been evaluated.",
    ]


def ev_type_distribution(facts: Facts) -> List[str]:
    e = facts["entries"]
    lines = [f"The most popular EV type is {e[0]['label']}, making up {e[0]['share']:.2f}% of all electric vehicles."]
    if len(e) > 1:
        lines.append(f"The second most popular EV type is {e[1]['label']}, accounting for {e[1]['share']:.2f}% of the total market.")
    else:
        lines.append(
            f"All {facts['total']} vehicles with a recorded type fall under "
            f"{_plural(facts['groups'], 'EV type', 'EV types')}."
        )
    return lines


def ev_market_share(facts: Facts) -> List[str]:
    e = facts["entries"]
    lines = [f"The most popular EV type is {e[0]['label']}, accounting for {e[0]['share']:.2f}% of all electric vehicles."]
    if len(e) > 1:
        lines.append(f"The second most popular EV type is {e[1]['label']}, making up {e[1]['share']:.2f}% of the market.")
        if facts["groups"] > 2:
            remaining = 100 - (e[0]["share"] + e[1]["share"])
            lines.append(f"The remaining EV types together account for {remaining:.2f}% of the market.")
    else:
        lines.append(
            f"Market share is measured over {facts['total']} vehicles across "
            f"{_plural(facts['groups'], 'EV type', 'EV types')}."
        )
    return lines
