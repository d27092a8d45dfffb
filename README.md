# boardview

Readers for the boardview files that describe printed circuit boards: the
outline of the board, its parts, the pins of each part, and the test points
(nails). Every reader turns a file's bytes into the same plain Python model,
defined in `boardview.board`.

## Supported formats

| Module               | Class          | Format                                                 |
|----------------------|----------------|--------------------------------------------------------|
| `boardview.brd`      | `BRDFile`      | BRD, plain or encoded                                  |
| `boardview.brd2`     | `BRD2File`     | BRD2 (`BRDOUT:` / `NETS:` / `PARTS:` / `PINS:` / `NAILS:`) |
| `boardview.bdv`      | `BDVFile`      | BDV, encoded bundle of `.asc` tables                   |
| `boardview.bvr`      | `BVRFile`      | BVRAW format 1                                         |
| `boardview.bvr3`     | `BVR3File`     | BVRAW format 3                                         |
| `boardview.asc`      | `ASCFile`      | A directory of `format.asc`, `pins.asc`, `nails.asc`   |
| `boardview.cad`      | `CADFile`      | CAD text export (`COMP`, `C_PIN`, `NET`, `N_VIA`)      |
| `boardview.cst`      | `CSTFile`      | CST binary                                             |
| `boardview.altium`   | `ADFile`       | Altium ASCII PCB (`Protel_Advanced_PCB`)               |
| `boardview.fz`       | `FZFile`       | FZ, encrypted and compressed; needs a key              |
| `boardview.allegro`  | `AllegroFile`  | Detected only; always reported as unsupported          |

## Usage

All readers except `ASCFile` and `CSTFile` provide a static
`verify_format(data)` that says whether some bytes look like their format.
Each constructor takes the file's bytes.

```python
from pathlib import Path

from boardview.brd import BRDFile

data = Path("board.brd").read_bytes()
if BRDFile.verify_format(data):
    board = BRDFile(data)
    for part in board.parts:
        print(part.name, part.mounting_side, part.part_type)
    for pin in board.pins:
        print(pin.part, pin.net, pin.pos.x, pin.pos.y)
```

Each board object is a `boardview.board.BoardFile` and holds:

- `format`: points of the board outline, in mils (`Point` objects)
- `outline_segments`: pairs of points, for formats that describe the outline as segments
- `parts`, `pins`, `nails`: lists of `Part`, `Pin` and `Nail`
- `num_format`, `num_parts`, `num_pins`, `num_nails`: the counts
- `valid` and `error_msg`: whether parsing succeeded, and why not if it did not

`Pin.part` is the 1-based index of the pin's part in `parts`. Sides and part
types are the enums `PartMountingSide`, `PinSide` and `PartType`.

Formats that store no outline (CAD, CST, FZ) get a rectangle around the
outermost pins with a 20 mil margin.

### Errors

Data that is too short or malformed raises `boardview.board.BoardFormatError`,
a subclass of `ValueError`. Files that are recognised but cannot be read set
`valid` to `False` and explain in `error_msg` instead: `AllegroFile` always
does so, `ASCFile` does so when one of its tables is missing, and `FZFile`
does so when the key fails its parity check.

### ASC tables

The ASC reader takes the path of any one of the `.asc` files and reads its
companion files from the same directory, whatever the case of their names;
the bytes it is given are not used.

```python
from pathlib import Path

from boardview.asc import ASCFile

path = Path("dump/pins.asc")
board = ASCFile(path.read_bytes(), path)
```

`boardview.asc.find_file_insensitive(directory, filename)` does the lookup on
its own and returns `None` when nothing matches.

### FZ files

An FZ file needs the 44-word key it was encrypted with. `check_fz_key(key)`
tests the key's parity; `fz_key_to_string(key)` formats it for display. The
lower-level steps are available as `decode(data, key)`, `split(data)` and
`decompress(data)`. Files whose content is compressed but not encrypted are
read without decryption.

```python
from boardview.fz import FZFile, check_fz_key

if check_fz_key(key):
    board = FZFile(data, key)
    for desc in board.parts_desc:
        print(desc.partno, desc.description, desc.locations)
```

## What this package does not do

It only reads files into data. There is no viewer, no drawing of boards, no
search, and no command-line tool; nothing is written back to disk.

## Tests

```
pip install -e .[test]
pytest
```