"""
Routing of samples to downstream consumer groups, based on the read layout.

A sample can go to any number of targets: routing is not an exclusive
dispatch. A sample matching no target is simply not processed by those stages.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, NamedTuple

from .targets import SampleRecord


class ReadLayout(NamedTuple):
    single_end: bool
    long_reads: bool


Predicate = Callable[[ReadLayout], bool]


@dataclass(frozen=True)
class RoutingTarget:
    """
    Named consumer group of samples.
    """

    name: str
    predicate: Predicate

    def accepts(self, record: SampleRecord) -> bool:
        return bool(self.predicate(layout(record)))


SHORT_READ_QC = 'short-read-qc'
LONG_READ_QC = 'long-read-qc'
SHORT_READ_ALIGNMENT = 'short-read-alignment'
LONG_READ_ALIGNMENT = 'long-read-alignment'
PAIRED_END = 'paired-end'
SINGLE_END = 'single-end'

ROUTING_TARGETS = (
    RoutingTarget(SHORT_READ_QC, lambda lt: not lt.long_reads),
    RoutingTarget(LONG_READ_QC, lambda lt: lt.long_reads),
    RoutingTarget(SHORT_READ_ALIGNMENT, lambda lt: not lt.long_reads),
    RoutingTarget(LONG_READ_ALIGNMENT, lambda lt: lt.long_reads),
    RoutingTarget(PAIRED_END, lambda lt: not lt.single_end and not lt.long_reads),
    RoutingTarget(SINGLE_END, lambda lt: lt.single_end and not lt.long_reads),
)

DEFAULT_TARGETS: dict[str, Predicate] = {t.name: t.predicate for t in ROUTING_TARGETS}


def layout(record: SampleRecord) -> ReadLayout:
    return ReadLayout(single_end=record.single_end, long_reads=record.long_reads)


def route(record: SampleRecord, predicates: Mapping[str, Predicate]) -> frozenset[str]:
    """
    Names of all targets whose predicate accepts the record. Every predicate
    is evaluated, and only sees the read layout flags of the record.
    """
    lt = layout(record)
    return frozenset(name for name, predicate in predicates.items() if predicate(lt))


def fan_out(
    records: Iterable[SampleRecord],
    predicates: Mapping[str, Predicate],
) -> dict[str, list[SampleRecord]]:
    """
    Records grouped by target name. Every target is present in the result,
    possibly with an empty list; record order is preserved within a target.
    """
    by_target: dict[str, list[SampleRecord]] = {name: [] for name in predicates}
    for record in records:
        for name in route(record, predicates):
            by_target[name].append(record)
    return by_target
