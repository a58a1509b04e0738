#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
wordlist.py

Word corpus for generated passphrases.

The built-in list is plain lowercase German without umlauts so that
passwords can be typed on any keyboard layout. A school can swap it for its
own list file (one word per line, '#' starts a comment).
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple, Union

from roster_records import DEFAULT_SEPARATOR, ConfigurationError


WORDLIST = """
abend
adler
ahorn
ameise
ampel
anker
apfel
arbeit
armband
ast
atlas
auto
bach
backen
bagger
ball
banane
bank
bauer
baum
becher
beere
berg
besen
biber
biene
birne
blatt
blitz
blume
boden
boot
brief
brille
brot
bruecke
brunnen
buch
burg
butter
dach
dampf
daumen
decke
delfin
docht
donner
dorf
drache
eimer
eis
elch
ente
erbse
erde
esel
eule
fahne
falke
farbe
feder
feld
fels
fenster
feuer
fisch
flagge
flasche
floete
fluss
fohlen
forelle
frosch
fuchs
gabel
garten
geige
gipfel
glas
gold
gras
gurke
hafen
hagel
hahn
hammer
hase
haus
hecht
heft
hering
himmel
hirsch
holz
honig
hummel
hut
igel
insel
jacke
jaguar
kaese
kaffee
kamel
kanal
kanne
karte
katze
kegel
kerze
kiesel
kirsche
kiste
klee
knopf
koffer
kompass
korb
kran
krebs
kreide
krone
kuchen
kugel
lampe
laterne
laub
leiter
licht
linde
loewe
loeffel
luchs
mantel
marder
maus
meer
melone
milch
mond
moos
moewe
muehle
muschel
nadel
nebel
nest
nudel
nuss
oase
ofen
orgel
otter
paket
palme
papier
pfeffer
pferd
pilz
pinsel
planet
pony
quelle
rabe
radio
regen
reh
ring
rose
rucksack
sand
schaf
schal
schiff
schnee
schuh
see
segel
sonne
spatz
spiegel
stern
stiefel
storch
strand
stuhl
tafel
tal
tanne
tasche
teller
tiger
tisch
tomate
topf
traube
turm
ufer
uhr
vogel
vulkan
waage
wald
wal
wasser
welle
wiese
wind
wolke
wolle
wurzel
zebra
zelt
ziege
zitrone
zug
zwiebel
"""


def parse_wordlist(text: str, separator: str = DEFAULT_SEPARATOR) -> Tuple[str, ...]:
    """
    One word per line. Blank lines and '#' comments are ignored.
    """
    words: List[str] = []
    for line in text.splitlines():
        w = line.strip()
        if not w or w.startswith("#"):
            continue
        if separator and separator in w:
            raise ConfigurationError(f"Word {w!r} contains the passphrase separator {separator!r}")
        words.append(w)
    if not words:
        raise ConfigurationError("Word list is empty")
    return tuple(words)


def load_wordlist(path: Union[str, Path], separator: str = DEFAULT_SEPARATOR) -> Tuple[str, ...]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read word list {path}: {e}") from e
    return parse_wordlist(text, separator)


WORDS = parse_wordlist(WORDLIST)
