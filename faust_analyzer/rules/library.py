"""Bundled import dictionary for the Faust standard libraries.

Only arities are recorded, never function bodies. A library function taking
``k`` parameters and processing ``i`` signals is stored as the box
``(k + i, o)``; calling it with ``k`` arguments leaves ``(i, o)``.
"""

from typing import Any
from ..core.types import Dimension, LibraryExport, LibrarySymbol
from ..errors import LibraryNotFound


STDFAUST = "stdfaust.lib"

NAMESPACES = {
    "aa": "aanl.lib",
    "an": "analyzers.lib",
    "ba": "basics.lib",
    "co": "compressors.lib",
    "de": "delays.lib",
    "dm": "demos.lib",
    "dx": "dx7.lib",
    "ef": "misceffects.lib",
    "en": "envelopes.lib",
    "fi": "filters.lib",
    "ho": "hoa.lib",
    "it": "interpolators.lib",
    "ma": "maths.lib",
    "mi": "physmodels.lib",
    "no": "noises.lib",
    "os": "oscillators.lib",
    "pf": "phaflangers.lib",
    "pm": "physmodels.lib",
    "re": "reverbs.lib",
    "ro": "routes.lib",
    "si": "signals.lib",
    "so": "soundfiles.lib",
    "sp": "spats.lib",
    "sy": "synths.lib",
    "ve": "vaeffects.lib",
    "wa": "webaudio.lib",
}

# name: (inputs, outputs[, delay])
_SYMBOLS: dict[str, tuple] = {
    "os.osc": (1, 1),
    "os.oscsin": (1, 1),
    "os.osccos": (1, 1),
    "os.oscp": (2, 1),
    "os.sawtooth": (1, 1),
    "os.square": (1, 1),
    "os.triangle": (1, 1),
    "os.phasor": (2, 1),
    "os.lf_saw": (1, 1),
    "os.lf_sawpos": (1, 1),
    "os.lf_squarewave": (1, 1),
    "os.lf_triangle": (1, 1),
    "os.lf_imptrain": (1, 1),
    "os.imptrain": (1, 1),
    "os.pulsetrain": (2, 1),
    "fi.lowpass": (3, 1),
    "fi.highpass": (3, 1),
    "fi.bandpass": (4, 1),
    "fi.resonlp": (4, 1),
    "fi.resonhp": (4, 1),
    "fi.resonbp": (4, 1),
    "fi.lowpass6e": (2, 1),
    "fi.highpass6e": (2, 1),
    "fi.dcblocker": (1, 1),
    "fi.pole": (2, 1, True),
    "fi.zero": (2, 1, True),
    "fi.integrator": (1, 1, True),
    "fi.fb_comb": (5, 1, True),
    "fi.ff_comb": (4, 1, True),
    "fi.allpass_comb": (4, 1, True),
    "fi.peak_eq": (4, 1),
    "de.delay": (3, 1, True),
    "de.fdelay": (3, 1, True),
    "de.sdelay": (4, 1, True),
    "de.fdelaylti": (4, 1, True),
    "ba.db2linear": (1, 1),
    "ba.linear2db": (1, 1),
    "ba.sec2samp": (1, 1),
    "ba.samp2sec": (1, 1),
    "ba.midikey2hz": (1, 1),
    "ba.hz2midikey": (1, 1),
    "ba.tau2pole": (1, 1),
    "ba.pole2tau": (1, 1),
    "ba.time": (0, 1, True),
    "ba.impulse": (0, 1, True),
    "ba.beat": (1, 1, True),
    "ba.if": (3, 1),
    "ba.sAndH": (2, 1, True),
    "ba.downSample": (2, 1, True),
    "ba.toggle": (1, 1, True),
    "ma.SR": (0, 1),
    "ma.PI": (0, 1),
    "ma.T": (0, 1),
    "ma.EPSILON": (0, 1),
    "ma.MAX": (0, 1),
    "ma.MIN": (0, 1),
    "ma.tanh": (1, 1),
    "ma.signum": (1, 1),
    "ma.frac": (1, 1),
    "ma.inv": (1, 1),
    "ma.neg": (1, 1),
    "si.smoo": (1, 1, True),
    "si.smooth": (2, 1, True),
    "si.interpolate": (3, 1),
    "si.polySmooth": (3, 1, True),
    "co.compressor_mono": (5, 1, True),
    "co.limiter_1176_R4_mono": (1, 1, True),
    "en.adsr": (5, 1, True),
    "en.ar": (3, 1, True),
    "en.asr": (4, 1, True),
    "en.adsre": (5, 1, True),
    "re.mono_freeverb": (5, 1, True),
    "re.stereo_freeverb": (6, 2, True),
    "re.zita_rev1_stereo": (8, 2, True),
    "ef.echo": (4, 1, True),
    "ef.cubicnl": (3, 1),
    "ef.gate_mono": (5, 1, True),
    "ef.transpose": (4, 1, True),
    "no.noise": (0, 1, True),
    "no.pink_noise": (0, 1, True),
    "an.amp_follower": (2, 1, True),
    "an.rms_envelope_rect": (2, 1, True),
    "pf.flanger_mono": (6, 1, True),
    "pf.phaser2_mono": (10, 1, True),
    "sp.panner": (2, 2),
    "ve.moog_vcf": (3, 1, True),
    "ve.wah4": (2, 1, True),
    "ve.crybaby": (2, 1, True),
}


def _symbol(entry: tuple) -> LibrarySymbol:
    inputs, outputs, *rest = entry
    return LibrarySymbol(arity=Dimension(inputs=inputs, outputs=outputs), delay=bool(rest and rest[0]))


def default_import_dictionary() -> dict[str, LibraryExport]:
    """A fresh copy of the bundled dictionary; callers may extend it freely."""
    stdfaust = LibraryExport(
        name=STDFAUST,
        namespaces=dict(NAMESPACES),
        symbols={name: _symbol(entry) for name, entry in _SYMBOLS.items()},
    )
    return {STDFAUST: stdfaust}


def load_import_dictionary(data: dict[str, Any]) -> dict[str, LibraryExport]:
    """Validate a caller-supplied mapping of library name to export table."""
    libraries = {}
    for name, export in data.items():
        if isinstance(export, LibraryExport):
            libraries[name] = export
        else:
            libraries[name] = LibraryExport.model_validate({"name": name, **export})
    return libraries


def get_library(name: str, dictionary: dict[str, LibraryExport] | None = None) -> LibraryExport:
    """Look up a library, raising ``LibraryNotFound`` when it is unknown."""
    libraries = dictionary if dictionary is not None else default_import_dictionary()
    try:
        return libraries[name]
    except KeyError:
        raise LibraryNotFound(name) from None


def standard_prefix(name: str) -> str | None:
    """Namespace prefix of ``name`` if it belongs to the standard libraries."""
    prefix, dot, _ = name.partition(".")
    if dot and prefix in NAMESPACES:
        return prefix
    return None
