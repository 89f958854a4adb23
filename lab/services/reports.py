"""
Server-side report rendering.

A report template is stored as JSON (``{components: [...], styles: {...}}``)
and parsed here into a typed component tree. Each component kind renders
through its own Django template fragment, so every value coming from a
sample or from the template itself is autoescaped.

A sample whose results carry ``<testKey>::<paramId>`` ids fans out into
one A4 page per test. If anything goes wrong while building the full
report, :func:`render_sample_report` falls back to the receipt-style
sample slip so the caller always gets a printable document.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from django.template.loader import render_to_string
from django.utils import timezone

logger = logging.getLogger(__name__)

DEFAULT_LAB_NAME = 'Medical Laboratory Report'
DEFAULT_LAB_SUBTITLE = 'ISO 15189:2012'
DEFAULT_FONT_SIZE = 12
DEFAULT_HEADER_COLOR = '#f3f4f6'
MAX_CHART_TICKS = 50
DISCLAIMER = (
    'System Generated Report, No Signature Required. '
    'Approved By Consultant. Not Valid For Any Court Of Law.'
)

_COLOR_RE = re.compile(r'^(#[0-9a-fA-F]{3,8}|[a-zA-Z]{3,20}|rgba?\([\d\s.,%]+\))$')
_BORDER_STYLES = {'none', 'solid', 'dashed', 'dotted', 'double'}
_SAFE_URL_RE = re.compile(r'^(https?://|data:image/|/)', re.IGNORECASE)


def _number(value: Any, default: Optional[float] = None) -> Optional[float]:
    if isinstance(value, bool):
        return default
    try:
        number = value if isinstance(value, (int, float)) else float(str(value).strip())
        finite = math.isfinite(number)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if finite else default


def _color(value: Any, default: str) -> str:
    text = str(value or '').strip()
    return text if _COLOR_RE.match(text) else default


def safe_url(value: Any) -> str:
    text = str(value or '').strip()
    return text if _SAFE_URL_RE.match(text) else ''


# ---------------------------------------------------------------------
# Typed component tree
# ---------------------------------------------------------------------
@dataclass
class TemplateStyles:
    font_size: float = DEFAULT_FONT_SIZE
    header_color: str = DEFAULT_HEADER_COLOR
    border_style: str = 'solid'


@dataclass
class Component:
    id: str = ''
    data: dict = field(default_factory=dict)
    font_size: Optional[float] = None


class HeaderText(Component):
    pass


class PatientInfo(Component):
    pass


class ResultTable(Component):
    pass


class Logo(Component):
    pass


class Notes(Component):
    pass


class ConsultantSection(Component):
    pass


class AnalyteSummary(Component):
    pass


COMPONENT_TYPES: dict[str, type[Component]] = {
    'header-text': HeaderText,
    'patient-info': PatientInfo,
    'result-table': ResultTable,
    'logo': Logo,
    'notes': Notes,
    'consultant-section': ConsultantSection,
    'analyte-summary': AnalyteSummary,
}


@dataclass
class ReportTemplate:
    components: list[Component] = field(default_factory=list)
    styles: TemplateStyles = field(default_factory=TemplateStyles)


def parse_template(raw: Any) -> ReportTemplate:
    """Build a :class:`ReportTemplate` from stored JSON.

    Components of an unknown ``type`` are dropped, as are entries that
    are not objects. A missing or malformed template parses to an empty
    one, which renders with the default layout.
    """
    if not isinstance(raw, dict):
        return ReportTemplate()
    raw_styles = raw.get('styles') if isinstance(raw.get('styles'), dict) else {}
    border = str(raw_styles.get('borderStyle') or 'solid').strip().lower()
    styles = TemplateStyles(
        font_size=_number(raw_styles.get('fontSize'), None) or DEFAULT_FONT_SIZE,
        header_color=_color(raw_styles.get('headerColor'), DEFAULT_HEADER_COLOR),
        border_style=border if border in _BORDER_STYLES else 'solid',
    )
    components: list[Component] = []
    raw_components = raw.get('components')
    for item in raw_components if isinstance(raw_components, list) else []:
        if not isinstance(item, dict):
            continue
        cls = COMPONENT_TYPES.get(str(item.get('type') or ''))
        if cls is None:
            continue
        data = item.get('data') if isinstance(item.get('data'), dict) else {}
        size = _number(item.get('fontSize'), None)
        if size is None:
            size = _number(data.get('fontSize'), None)
        components.append(cls(id=str(item.get('id') or ''), data=data, font_size=size))
    return ReportTemplate(components=components, styles=styles)


# ---------------------------------------------------------------------
# Report data
# ---------------------------------------------------------------------
@dataclass
class LabIdentity:
    name: str = DEFAULT_LAB_NAME
    subtitle: str = DEFAULT_LAB_SUBTITLE
    logo_url: str = ''
    phone: str = ''
    email: str = ''
    address: str = ''

    @classmethod
    def from_settings(cls, lab: Optional[dict]) -> 'LabIdentity':
        lab = lab if isinstance(lab, dict) else {}
        return cls(
            name=str(lab.get('labName') or '').strip() or DEFAULT_LAB_NAME,
            subtitle=str(lab.get('accreditationBody') or '').strip() or DEFAULT_LAB_SUBTITLE,
            logo_url=safe_url(lab.get('logoUrl')),
            phone=str(lab.get('phone') or ''),
            email=str(lab.get('email') or ''),
            address=str(lab.get('address') or ''),
        )


def result_test_keys(sample) -> list[str]:
    """Ordered unique test prefixes of the sample's result ``parameterId``s."""
    keys: list[str] = []
    for row in sample.results or []:
        if not isinstance(row, dict):
            continue
        pid = str(row.get('parameterId') or '')
        idx = pid.find('::')
        if idx > 0 and pid[:idx] not in keys:
            keys.append(pid[:idx])
    return keys


def resolve_test_name(sample, key: str) -> str:
    tests = [t for t in (sample.tests or []) if isinstance(t, dict)]
    for t in tests:
        ids = [str(t.get(k) or '') for k in ('id', '_id', 'test')]
        if str(key) in ids and (t.get('name') or t.get('test')):
            return str(t.get('name') or t.get('test'))
    for t in tests:
        if str(t.get('name') or '').lower() == str(key).lower() and t.get('name'):
            return str(t['name'])
    return str(key)


def sample_test_names(sample) -> list[str]:
    """Ordered test names without case-insensitive duplicates."""
    names: list[str] = []
    seen: set[str] = set()
    for t in sample.tests or []:
        if isinstance(t, dict):
            name = str(t.get('name') or t.get('test') or '').strip()
        else:
            name = str(t or '').strip()
        if name and name.lower() not in seen:
            seen.add(name.lower())
            names.append(name)
    return names


def _result_row(row: dict) -> dict[str, str]:
    value = row.get('value')
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        shown = '-'
    else:
        shown = str(value)
    if row.get('isCritical'):
        status = 'Critical'
    elif row.get('isAbnormal'):
        status = 'Abnormal'
    else:
        status = 'Normal'
    return {
        'parameter': str(row.get('label') or row.get('parameter') or row.get('name')
                         or row.get('parameterId') or 'Parameter'),
        'result': shown,
        'unit': str(row.get('unit') or ''),
        'referenceRange': str(row.get('normalText') or '-'),
        'status': status,
    }


def _clinical_notes(sample, test_key: Optional[str]) -> str:
    if test_key:
        for it in sample.interpretations or []:
            if not isinstance(it, dict):
                continue
            if str(it.get('testKey') or it.get('testName') or '') == str(test_key):
                text = it.get('text')
                if isinstance(text, str) and text.strip():
                    return text.strip()
    return (sample.interpretation or '').strip()


def build_report_data(sample, test_key: Optional[str] = None) -> dict[str, Any]:
    now = timezone.localtime()
    collected = timezone.localtime(sample.created_at) if sample.created_at else None

    rows = [r for r in (sample.results or []) if isinstance(r, dict)]
    current_test_name = None
    if rows:
        if test_key:
            prefix = f"{test_key}::"
            rows = [r for r in rows if str(r.get('parameterId') or '').startswith(prefix)]
            current_test_name = resolve_test_name(sample, test_key)
        test_results = [_result_row(r) for r in rows]
    else:
        test_results = [
            {'parameter': name, 'result': '-', 'unit': '-', 'referenceRange': '-', 'status': 'Normal'}
            for name in sample_test_names(sample)
        ]

    return {
        'patientInfo': {
            'name': sample.patient_name or '',
            'id': sample.patient_code or 'N/A',
            'age': f"{sample.age} Years" if sample.age else 'N/A',
            'gender': sample.gender or 'N/A',
            'phone': sample.phone or '',
            'cnic': sample.cnic or '',
            'address': sample.address or '',
            'referringDoctor': sample.referring_doctor or '',
            'sampleCollectedBy': sample.sample_collected_by or '',
            'collectedSample': sample.collected_sample or ', '.join(sample.collected_samples or []),
            'collectionDate': collected.strftime('%b %d, %Y, %I:%M %p') if collected else 'N/A',
            'reportDate': now.strftime('%B %d, %Y %I:%M %p'),
            'sampleId': sample.sample_number or sample.barcode or str(sample.pk or 'N/A'),
        },
        'testResults': test_results,
        'clinicalNotes': _clinical_notes(sample, test_key),
        'currentTestName': current_test_name,
    }


# ---------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------
FALLBACK_ORDER = (HeaderText(), PatientInfo(), ResultTable(), Notes())


def analyte_context(data: dict) -> dict[str, Any]:
    """Status text and chart geometry for an analyte-summary block."""
    raw_value = data.get('analyteValue', data.get('value', 212))
    value = _number(raw_value, None)
    low_max = _number(data.get('rangeLowMax'), 200)
    normal_max = _number(data.get('rangeNormalMax'), 240)

    if data.get('analyteStatus'):
        status = str(data['analyteStatus'])
    elif value is None:
        status = 'N/A'
    elif value < low_max:
        status = 'Desirable'
    elif value <= normal_max:
        status = 'Borderline High'
    else:
        status = 'High'

    chart_min = _number(data.get('chartMin'), low_max - 20)
    chart_max = _number(data.get('chartMax'), normal_max + 20)
    if chart_max < chart_min or not math.isfinite(chart_max - chart_min):
        chart_min, chart_max = low_max - 20, normal_max + 20
    clamped = min(chart_max, max(chart_min, value)) if value is not None else chart_min
    if chart_max == chart_min:
        marker_pct = 0.0
    else:
        marker_pct = (1 - (clamped - chart_min) / (chart_max - chart_min)) * 100

    def pct(tick: float) -> float:
        if chart_max == chart_min:
            return 0.0
        return round((1 - (tick - chart_min) / (chart_max - chart_min)) * 100, 2)

    step = _number(data.get('chartLabelStep'), 20)
    if step <= 0:
        step = 20
    # Widen the step rather than emit more than MAX_CHART_TICKS labels
    step = max(step, (chart_max - chart_min) / (MAX_CHART_TICKS - 1))
    ticks: list[float] = []
    for i in range(MAX_CHART_TICKS):
        t = chart_max - i * step if i else chart_max
        if t < chart_min:
            break
        ticks.append(t)
    for boundary in (low_max, normal_max):
        if boundary not in ticks and chart_min <= boundary <= chart_max:
            ticks.append(boundary)
    ticks.sort(reverse=True)

    return {
        'name': data.get('analyteName') or data.get('parameterName') or data.get('currentTestName')
        or 'Serum Total Cholesterol',
        'unit': data.get('analyteUnit') or data.get('unit') or 'mg/dL',
        'note': data.get('analyteNote') or '',
        'value': _fmt_number(value) if value is not None else str(raw_value or 'N/A'),
        'status': status,
        'low_max': _fmt_number(low_max),
        'normal_max': _fmt_number(normal_max),
        'marker_pct': round(marker_pct, 2),
        'ticks': [{'label': _fmt_number(t), 'pct': pct(t)} for t in ticks],
    }


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class ReportRenderer:
    """Renders one template against one sample's report data."""

    def __init__(self, template: ReportTemplate, identity: LabIdentity):
        self.template = template
        self.identity = identity
        self.styles = template.styles

    def _ctx(self, component: Component, report: dict[str, Any], **extra) -> dict[str, Any]:
        ctx = {
            'component': component,
            'data': component.data,
            'font_size': component.font_size,
            'border_style': self.styles.border_style,
            'header_color': self.styles.header_color,
            'lab': self.identity,
            'report': report,
            'patient': report['patientInfo'],
        }
        ctx.update(extra)
        return ctx

    def render_component(self, component: Component, report: dict[str, Any]) -> str:
        if isinstance(component, HeaderText):
            return render_to_string('lab/report/components/header_text.html', self._ctx(component, report))
        if isinstance(component, Logo):
            size = _number(component.data.get('size'), None) or 64
            alignment = component.data.get('alignment')
            justify = {'center': 'center', 'right': 'flex-end'}.get(alignment, 'flex-start')
            image = safe_url(component.data.get('imageUrl')) or self.identity.logo_url
            return render_to_string('lab/report/components/logo.html',
                                    self._ctx(component, report, size=size, justify=justify, image_url=image))
        if isinstance(component, PatientInfo):
            return render_to_string('lab/report/components/patient_info.html', self._ctx(component, report))
        if isinstance(component, ResultTable):
            return render_to_string('lab/report/components/result_table.html', self._ctx(component, report))
        if isinstance(component, Notes):
            return render_to_string('lab/report/components/notes.html', self._ctx(component, report))
        if isinstance(component, AnalyteSummary):
            return render_to_string('lab/report/components/analyte_summary.html',
                                    self._ctx(component, report, analyte=analyte_context(component.data)))
        if isinstance(component, ConsultantSection):
            return ''
        raise TypeError(f"unhandled report component {type(component).__name__}")

    def consultant(self) -> Optional[dict]:
        sections = [c for c in self.template.components if isinstance(c, ConsultantSection)]
        return sections[-1].data if sections else None

    def render_page(self, report: dict[str, Any]) -> str:
        pieces = [p for p in (self.render_component(c, report) for c in self.template.components) if p]
        if not pieces:
            pieces = [self.render_component(c, report) for c in FALLBACK_ORDER]
        return render_to_string('lab/report/page.html', {
            'pieces': pieces,
            'consultant': self.consultant(),
            'font_size': self.styles.font_size,
            'disclaimer': DISCLAIMER,
        })

    def render_sample(self, sample) -> str:
        keys = result_test_keys(sample)
        if keys:
            pages = [self.render_page(build_report_data(sample, key)) for key in keys]
        else:
            pages = [self.render_page(build_report_data(sample))]
        return render_to_string('lab/report/report.html', {
            'pages': pages,
            'font_size': self.styles.font_size,
        })


def print_document(body: str, auto_print: bool = False, title: str = 'Report') -> str:
    """Wrap rendered markup in a standalone printable HTML document."""
    return render_to_string('lab/report/print.html', {
        'body': body,
        'auto_print': auto_print,
        'title': title,
    })


def render_report_body(template_json: Any, sample, lab: Optional[dict]) -> str:
    renderer = ReportRenderer(parse_template(template_json), LabIdentity.from_settings(lab))
    return renderer.render_sample(sample)


def slip_charges(sample, pricing: Optional[dict]) -> dict[str, float]:
    pricing = pricing if isinstance(pricing, dict) else {}
    subtotal = sum(_number(t.get('price'), 0) or 0 for t in sample.tests or [] if isinstance(t, dict))
    urgent_rate = (_number(pricing.get('urgentTestUpliftRate'), 0) or 0) if sample.priority == 'urgent' else 0
    discount_rate = _number(pricing.get('bulkDiscountRate'), 0) or 0
    tax_rate = _number(pricing.get('taxRate'), 0) or 0
    urgent_amount = subtotal * urgent_rate / 100
    discount_amount = (subtotal + urgent_amount) * discount_rate / 100
    tax_amount = (subtotal + urgent_amount - discount_amount) * tax_rate / 100
    return {
        'subtotal': subtotal,
        'urgent_rate': urgent_rate,
        'urgent_amount': urgent_amount,
        'discount_rate': discount_rate,
        'discount_amount': discount_amount,
        'tax_rate': tax_rate,
        'tax_amount': tax_amount,
    }


def render_sample_slip(sample, lab: Optional[dict], pricing: Optional[dict] = None) -> str:
    lab = lab if isinstance(lab, dict) else {}
    created = timezone.localtime(sample.created_at) if sample.created_at else timezone.localtime()
    tests = [
        {'name': str(t.get('name') or t.get('test') or ''), 'price': _number(t.get('price'), 0) or 0}
        for t in sample.tests or [] if isinstance(t, dict)
    ]
    return render_to_string('lab/report/slip.html', {
        'lab_name': str(lab.get('labName') or '').strip() or 'Hospital Lab',
        'lab_address': lab.get('address') or '',
        'lab_phone': lab.get('phone') or '',
        'logo_url': safe_url(lab.get('logoUrl')),
        'sample': sample,
        'date_time': created.strftime('%d/%m/%Y %I:%M:%S %p'),
        'tests': tests,
        'charges': slip_charges(sample, pricing),
        'collected_sample': sample.collected_sample or ', '.join(sample.collected_samples or []),
    })


def render_sample_report(sample, settings_obj) -> tuple[str, bool]:
    """Render the templated report, or the slip if that fails.

    Returns the markup and whether it is the full report.
    """
    try:
        return render_report_body(settings_obj.report_template, sample, settings_obj.lab), True
    except Exception:
        logger.exception("report rendering failed for sample %s, using slip", sample.pk)
        return render_sample_slip(sample, settings_obj.lab, settings_obj.pricing), False
