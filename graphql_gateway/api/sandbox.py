"""
GraphQL sandbox page served at "/".

A single-page GraphiQL editor loaded from a CDN. The graph to query is read
from the `graph` query parameter, and the caller's token, if any, from the
`token` parameter; both are forwarded on every request.
"""

SANDBOX_HTML = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>GraphQL Gateway</title>
    <link rel="stylesheet" href="https://unpkg.com/graphiql@3/graphiql.min.css" />
    <style>body { margin: 0; height: 100vh; } #graphiql { height: 100vh; }</style>
  </head>
  <body>
    <div id="graphiql">Loading...</div>
    <script crossorigin src="https://unpkg.com/react@18/umd/react.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/graphiql@3/graphiql.min.js"></script>
    <script>
      const params = new URLSearchParams(window.location.search);
      const graph = params.get("graph") || "default";
      const token = params.get("token");
      const fetcher = GraphiQL.createFetcher({
        url: "/graphql/" + encodeURIComponent(graph),
        headers: token ? { Authorization: "Bearer " + token } : {},
      });
      ReactDOM.createRoot(document.getElementById("graphiql")).render(
        React.createElement(GraphiQL, { fetcher: fetcher })
      );
    </script>
  </body>
</html>
"""
