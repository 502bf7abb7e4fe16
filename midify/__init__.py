"""Parse MIDI and PCM WAVE files and render MIDI tracks into audio."""

from .byteconv import (  # noqa: F401
    bytes_to_ascii,
    bytes_to_int,
    int_to_bytes,
)
from .errors import (  # noqa: F401
    MalformedEventError,
    MalformedHeaderError,
    MidifyError,
    TruncatedStreamError,
    UnknownEventTypeError,
    UnsupportedFeatureError,
    UnsupportedSysExError,
)
from .events import (  # noqa: F401
    ControllerData,
    ControllerType,
    EventKind,
    NoteData,
    TempoData,
    TimeSignatureData,
    TrackEvent,
    read_event,
)
from .midi import (  # noqa: F401
    Midi,
    MidiHeader,
    TrackChunk,
)
from .records import (  # noqa: F401
    ByteStream,
    Field,
    FieldKind,
    Vlv,
    encode_vlv,
    read_record,
    read_vlv,
    schema,
    write_record,
)
from .render import (  # noqa: F401
    OpenNotes,
    append_or_combine,
    render_track,
)
from .tempo import (  # noqa: F401
    DEFAULT_TEMPO,
    TempoMap,
    samples_per_tick,
)
from .wave import (  # noqa: F401
    MIN_WAVE_SIZE,
    TARGET_SAMPLE_RATE,
    DataChunk,
    FormatChunk,
    Sample,
    Wave,
    WaveHeader,
)
