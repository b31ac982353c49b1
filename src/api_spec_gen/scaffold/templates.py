"""Documentation viewer pages written by ``init``, one per supported UI."""

from string import Template

UI_DEPENDENCIES = {
    "scalar": ["@scalar/api-reference-react", "ajv"],
    "swagger": ["swagger-ui-react"],
    "redoc": ["redoc"],
    "stoplight": ["@stoplight/elements"],
    "rapidoc": ["rapidoc"],
}

SUPPORTED_UIS = tuple(UI_DEPENDENCIES)

_SCALAR = Template('''"use client";

import { ApiReferenceReact } from "@scalar/api-reference-react";

import "@scalar/api-reference-react/style.css";

export default function ApiDocsPage() {
  return (
    <ApiReferenceReact
      configuration={{
        _integration: "nextjs",
        url: "/$output_file",
      }}
    />
  );
}
''')

_SWAGGER = Template('''import "swagger-ui-react/swagger-ui.css";

import dynamic from "next/dynamic";

const SwaggerUI = dynamic(() => import("swagger-ui-react"), {
  ssr: false,
  loading: () => <p>Loading Component...</p>,
});

export default async function ApiDocsPage() {
  return (
    <section>
      <SwaggerUI url="/$output_file" />
    </section>
  );
}
''')

_REDOC = Template('''"use client";

import { RedocStandalone } from "redoc";

export default async function ApiDocsPage() {
  return (
    <section>
      <RedocStandalone specUrl="/$output_file" />
    </section>
  );
}
''')

_STOPLIGHT = Template('''"use client";

import { API } from "@stoplight/elements";
import "@stoplight/elements/styles.min.css";

export default function ApiDocsPage() {
  return (
    <section style={{ height: "100vh" }}>
      <API apiDescriptionUrl="/$output_file" />
    </section>
  );
}
''')

_RAPIDOC = Template('''"use client";

import "rapidoc";

export default function ApiDocsPage() {
  return (
    <section style={{ height: "100vh" }}>
      <rapi-doc
        spec-url="/$output_file"
        render-style="read"
        style={{ height: "100vh", width: "100%" }}
      ></rapi-doc>
    </section>
  );
}
''')

_PAGES = {
    "scalar": _SCALAR,
    "swagger": _SWAGGER,
    "redoc": _REDOC,
    "stoplight": _STOPLIGHT,
    "rapidoc": _RAPIDOC,
}


def render_page(ui: str, output_file: str) -> str:
    """Source of the ``page.tsx`` that renders ``/<output_file>`` with ``ui``."""
    if ui not in _PAGES:
        raise ValueError(f"Unsupported UI '{ui}', expected one of: {', '.join(SUPPORTED_UIS)}")
    return _PAGES[ui].substitute(output_file=output_file)
