from django import template

from reports import choices

register = template.Library()

BADGE_VARIANTS = frozenset(choices.ReportStatus.values)


@register.filter
def department_label(code):
    return choices.department_label(code)


@register.filter
def status_icon(status):
    return choices.status_icon(status)


@register.inclusion_tag('reports/_status_badge.html')
def status_badge(status):
    variant = status if status in BADGE_VARIANTS else choices.ReportStatus.PENDING.value
    return {'variant': variant, 'label': choices.status_label(status)}
