"""Analysis parameters handed from one pipeline stage process to the next.

Each stage runs as a separate batch job, so the lane stage writes these
to the analysis directory and the alignment and post-processing stages read
them back. The file holds KEY=value lines preceded by a schema version.
"""
import collections
import os

from slxpipe.errors import ConfigurationError

PARAMS_FILE = "BWAConfigParams.txt"
SCHEMA_VERSION = 1
NO_REFERENCE = "sequence"
QUAL_FORMATS = ("PHRED+33", "PHRED+64")

# file key, attribute, default
_FIELDS = [("REFERENCE_PATH", "reference_path", NO_REFERENCE),
           ("LIBRARY_NAME", "library_name", None),
           ("SAMPLE_NAME", "sample_name", None),
           ("FILTER_PHIX", "filter_phix", False),
           ("CHIP_DESIGN", "chip_design", None),
           ("RG_PU_FIELD", "rg_pu_field", None),
           ("FC_BARCODE", "fc_barcode", None),
           ("BASE_QUAL_FORMAT", "base_qual_format", None),
           ("SCHEDULER_QUEUE", "scheduler_queue", "normal")]

_BOOLEANS = {"true": True, "false": False, "1": True, "0": False, "yes": True, "no": False}


class AnalysisParams(collections.namedtuple("AnalysisParams", [f[1] for f in _FIELDS])):
    """Typed record of per lane barcode analysis parameters.
    """
    def __new__(cls, **kwargs):
        vals = {attr: default for _, attr, default in _FIELDS}
        unknown = set(kwargs) - set(vals)
        if unknown:
            raise ConfigurationError("Unknown analysis parameters: %s" % ", ".join(sorted(unknown)))
        vals.update((k, v) for k, v in kwargs.items() if v is not None)
        if not vals["reference_path"]:
            vals["reference_path"] = NO_REFERENCE
        if not vals["scheduler_queue"]:
            vals["scheduler_queue"] = "normal"
        vals["filter_phix"] = _to_bool(vals["filter_phix"])
        if vals["base_qual_format"] and vals["base_qual_format"] not in QUAL_FORMATS:
            raise ConfigurationError("Base quality format can only be %s, found %s"
                                     % (" or ".join(QUAL_FORMATS), vals["base_qual_format"]))
        return super(AnalysisParams, cls).__new__(cls, **vals)

    @property
    def needs_alignment(self):
        return self.reference_path != NO_REFERENCE

    def to_lines(self):
        out = ["SCHEMA_VERSION=%s" % SCHEMA_VERSION]
        for key, attr, _ in _FIELDS:
            val = getattr(self, attr)
            if isinstance(val, bool):
                val = "true" if val else "false"
            if val is not None:
                out.append("%s=%s" % (key, val))
        return out

    def write(self, dest_dir):
        """Write parameters to the standard file in the destination directory.
        """
        out_file = os.path.join(dest_dir, PARAMS_FILE)
        with open(out_file, "w") as out_handle:
            out_handle.write("\n".join(self.to_lines()) + "\n")
        return out_file

    @classmethod
    def from_lines(cls, lines, source="analysis parameters"):
        by_key = {key: attr for key, attr, _ in _FIELDS}
        version = None
        kwargs = {}
        for i, line in enumerate(lines):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                raise ConfigurationError("%s line %s is not KEY=value: %s" % (source, i + 1, line))
            key, val = [x.strip() for x in line.split("=", 1)]
            if key == "SCHEMA_VERSION":
                version = val
            elif key in by_key:
                kwargs[by_key[key]] = val or None
            else:
                raise ConfigurationError("%s has unknown key %s" % (source, key))
        if version != str(SCHEMA_VERSION):
            raise ConfigurationError("%s has unsupported schema version %s; expected %s"
                                     % (source, version, SCHEMA_VERSION))
        return cls(**kwargs)

    @classmethod
    def read(cls, work_dir):
        """Read parameters written by an earlier stage into work_dir.
        """
        in_file = os.path.join(work_dir, PARAMS_FILE)
        if not os.path.exists(in_file):
            raise ConfigurationError("Analysis parameters %s not found" % in_file)
        with open(in_file) as in_handle:
            return cls.from_lines(in_handle.readlines(), in_file)

def _to_bool(val):
    if isinstance(val, bool):
        return val
    try:
        return _BOOLEANS[str(val).strip().lower()]
    except KeyError:
        raise ConfigurationError("Expected a true/false value, found %s" % val)
