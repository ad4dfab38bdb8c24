"""Shared fixtures for core unit tests"""

from datetime import date

import pytest

from lessonpub.core.models import DocType, Document


LOGGER_MD = """\
# The Logger

A logger writes messages at or above its level.

```java
public class Logger {
    private int level;

    public Logger(int level) {
        this.level = level;
    }
}
```

Next: {{< ref "./constructors" >}}.
"""


@pytest.fixture(name="make_doc")
def make_doc_fixture():
    def make(identifier: str, title: str = None, when: date = date(2021, 1, 1), body: str = "Body.\n",
             doc_type: DocType = DocType.indexed, categories: tuple = ()) -> Document:
        return Document(
            identifier=identifier,
            source_path=f"{identifier}.md",
            title=title or identifier,
            date=when,
            categories=categories,
            doc_type=doc_type,
            body=body,
        )
    return make


@pytest.fixture(name="corpus")
def corpus_fixture(make_doc):
    """Three-lesson corpus: two under lessons/, one at the root."""
    docs = [
        make_doc("lessons/logger", "The Logger", date(2020, 12, 14), LOGGER_MD, categories=("java",)),
        make_doc("lessons/constructors", "Constructors", date(2021, 1, 1), "# Constructors\n"),
        make_doc("intro", "Intro", date(2019, 5, 5), "Welcome.\n", doc_type=DocType.unindexed),
    ]
    return {d.identifier: d for d in docs}
