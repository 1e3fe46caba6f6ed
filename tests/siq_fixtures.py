"""Helpers that build SIQ archives in memory for the test suite."""

import io
import zipfile

SIQ_NS = "https://github.com/VladimirKhil/SI/blob/master/assets/siq_5.xsd"

PIC_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
SONG_BYTES = b"ID3fake-mp3"
CLIP_BYTES = b"\x00\x00\x00\x18ftypmp42"

SAMPLE_CONTENT = f"""<?xml version="1.0" encoding="utf-8"?>
<package name="Friday Quiz" version="5" xmlns="{SIQ_NS}">
  <info>
    <authors>
      <author>Jane Doe</author>
    </authors>
  </info>
  <rounds>
    <round name="First round">
      <themes>
        <theme name="Pictures">
          <info><comments>  Look closely  </comments></info>
          <questions>
            <question price="100">
              <params>
                <param name="question" type="content">
                  <item>What is this?</item>
                  <item type="image">pic.jpg</item>
                </param>
                <param name="answer" type="content">
                  <item type="audio">song.mp3</item>
                </param>
              </params>
              <right><answer>A cat</answer><answer>Kitten</answer></right>
            </question>
            <question price="200" type="Secret">
              <params>
                <param name="question" type="content">
                  <item type="image">missing.png</item>
                </param>
                <param name="price" type="numberSet">
                  <numberSet minimum="100" maximum="500" step="100" />
                </param>
              </params>
              <right><answer>Dog</answer></right>
              <info><comments>Read aloud</comments></info>
            </question>
          </questions>
        </theme>
        <theme>
          <questions>
            <question price="300" type="empty" />
          </questions>
        </theme>
      </themes>
    </round>
    <round name="Final">
      <themes>
        <theme name="Video">
          <questions>
            <question price="-400">
              <params>
                <param name="question">
                  <param>
                    <item type="video">clip.mp4</item>
                  </param>
                  <item>After the clip</item>
                </param>
              </params>
            </question>
          </questions>
        </theme>
      </themes>
    </round>
  </rounds>
</package>
"""


def build_archive(files):
    """Return zip bytes holding ``files`` (a mapping of entry name to str/bytes)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            zf.writestr(name, data)
    return buffer.getvalue()


def sample_archive():
    return build_archive({
        "content.xml": SAMPLE_CONTENT,
        "Images/pic.jpg": PIC_BYTES,
        "Audio/song.mp3": SONG_BYTES,
        "Video/clip.mp4": CLIP_BYTES,
    })


def minimal_content(body, root="package", attrs=""):
    return f'<?xml version="1.0" encoding="utf-8"?><{root} {attrs}>{body}</{root}>'


def single_question(question_xml, theme_attrs='name="T"'):
    """Content document with one round holding one theme with the given question markup."""
    return minimal_content(
        f'<rounds><round name="R"><themes><theme {theme_attrs}><questions>'
        f'{question_xml}'
        f'</questions></theme></themes></round></rounds>'
    )


def corrupt_payload(archive, payload):
    """Flip the first byte of a stored entry's data so its CRC check fails."""
    assert archive.count(payload) == 1
    damaged = bytes([payload[0] ^ 0xFF]) + payload[1:]
    return archive.replace(payload, damaged)
