"""
Periodontal chart analysis.

A chart maps FDI tooth numbers to six probing sites (buccal/lingual x
distal/middle/mesial). From it we derive per-tooth scaling suggestions
(T021/T022) and a summary of the chart as a whole.
"""
from typing import Any, Dict, List, Optional

SIDES = ('buccal', 'lingual')
SITES = ('distal', 'middle', 'mesial')
URGENCY_RANK = {'high': 0, 'medium': 1, 'low': 2}

COMPLEX_TREATMENT = ('t021', 'Complex periodontal treatment', 'high')
STANDARD_TREATMENT = ('t022', 'Standard periodontal treatment', 'medium')


def _number(value) -> Optional[float]:
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n


def _fmt(depth: float):
    return int(depth) if float(depth).is_integer() else depth


def is_multi_rooted(tooth_number: int) -> bool:
    """Molars (6s, 7s, 8s) have more than one root."""
    return 6 <= tooth_number % 10 <= 8


def _iter_sites(measurements: Dict[str, Any]):
    for side in SIDES:
        side_data = measurements.get(side) or {}
        for site in SITES:
            m = side_data.get(site)
            if m:
                yield m


def _pick_treatment(max_depth: float, multi_rooted: bool):
    if multi_rooted:
        if max_depth >= 6:
            return COMPLEX_TREATMENT
        if max_depth >= 4:
            return STANDARD_TREATMENT
    else:
        if max_depth >= 8:
            return COMPLEX_TREATMENT
        if max_depth >= 4:
            return STANDARD_TREATMENT
    return None


def analyze_periodontal_data_for_scaling(teeth: Dict[Any, Dict[str, Any]]) -> List[dict]:
    suggestions = []
    for tooth_key, measurements in (teeth or {}).items():
        try:
            tooth_number = int(tooth_key)
        except (TypeError, ValueError):
            continue
        measurements = measurements or {}
        if measurements.get('isDisabled') or measurements.get('isImplant'):
            continue

        depths = []
        inflamed = False
        for m in _iter_sites(measurements):
            depth = _number(m.get('pocketDepth'))
            if depth and depth > 0:
                depths.append(depth)
            if m.get('bleeding') or m.get('suppuration'):
                inflamed = True
        if not depths:
            continue

        max_depth = max(depths)
        multi_rooted = is_multi_rooted(tooth_number)
        treatment = _pick_treatment(max_depth, multi_rooted)
        if treatment is None:
            continue
        code, description, urgency = treatment
        suggestions.append({
            'id': f'tooth-{tooth_number}-{code}',
            'toothNumber': tooth_number,
            'code': code,
            'description': description,
            'maxDepth': _fmt(max_depth),
            'hasInflammation': inflamed,
            'reason': f"{_fmt(max_depth)}mm ({'multi-rooted' if multi_rooted else 'single-rooted'})",
            'urgency': urgency,
        })

    suggestions.sort(key=lambda s: (URGENCY_RANK.get(s['urgency'], 3), s['toothNumber']))
    return suggestions


def periodontal_summary(teeth: Dict[Any, Dict[str, Any]]) -> dict:
    """Bleeding/plaque percentages and depth statistics over measured sites."""
    sites = bleeding = plaque = deep4 = deep6 = 0
    depth_total = 0.0
    teeth_measured = 0
    for measurements in (teeth or {}).values():
        measurements = measurements or {}
        if measurements.get('isDisabled'):
            continue
        counted = False
        for m in _iter_sites(measurements):
            depth = _number(m.get('pocketDepth'))
            if not depth or depth <= 0:
                continue
            counted = True
            sites += 1
            depth_total += depth
            if m.get('bleeding'):
                bleeding += 1
            if m.get('plaque'):
                plaque += 1
            if depth >= 4:
                deep4 += 1
            if depth >= 6:
                deep6 += 1
        if counted:
            teeth_measured += 1

    def pct(n):
        return round(n * 100.0 / sites, 1) if sites else 0.0

    return {
        'teethMeasured': teeth_measured,
        'sitesMeasured': sites,
        'bleedingOnProbingPercent': pct(bleeding),
        'plaquePercent': pct(plaque),
        'sitesAtLeast4mm': deep4,
        'sitesAtLeast6mm': deep6,
        'meanPocketDepth': round(depth_total / sites, 2) if sites else 0.0,
    }


def max_depth_per_tooth(teeth: Dict[Any, Dict[str, Any]]) -> Dict[str, float]:
    result = {}
    for tooth_key, measurements in (teeth or {}).items():
        depths = [
            d for d in (_number(m.get('pocketDepth')) for m in _iter_sites(measurements or {}))
            if d and d > 0
        ]
        if depths:
            result[str(tooth_key)] = _fmt(max(depths))
    return result


def compare_charts(before: Dict[str, Any], after: Dict[str, Any]) -> List[dict]:
    """Per-tooth change of the deepest pocket between two stored charts."""
    a = max_depth_per_tooth((before or {}).get('teeth'))
    b = max_depth_per_tooth((after or {}).get('teeth'))
    rows = []
    for tooth in sorted(set(a) | set(b), key=lambda t: int(t) if str(t).isdigit() else 0):
        old, new = a.get(tooth), b.get(tooth)
        delta = None if old is None or new is None else _fmt(round(new - old, 2))
        rows.append({'toothNumber': int(tooth) if str(tooth).isdigit() else tooth,
                     'before': old, 'after': new, 'delta': delta})
    return rows


def empty_chart(patient_id=None) -> dict:
    return {
        'patientId': patient_id,
        'teeth': {},
        'date': None,
        'type': 'INITIAL_ASSESSMENT',
    }
