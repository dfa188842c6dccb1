"""Hello World — the simplest switchyard app.

Demonstrates routes, return-value resolution, path parameters, and
Response chaining.

Run:
    python app.py
"""

from switchyard import App, HTTPError, Response

app = App()


@app.route("/")
def index(request, ctx):
    return "Hello, World!"


@app.route("/greet/:name")
def greet(request, ctx):
    return {"greeting": f"Hello, {request.path_params['name']}!"}


@app.route("/custom")
def custom(request, ctx):
    return Response("Created", content_type="text/plain").with_status(201).with_header("X-Custom", "switchyard")


@app.route("/teapot")
def teapot(request, ctx):
    raise HTTPError(418, "I'm a teapot")


if __name__ == "__main__":
    app.run()
