
import httpx

from remotehttp import InterceptingTransport, RemoteHttp, spawn

def child():
    # Runs in the spawned process; every request goes to the parent first
    interceptor = RemoteHttp("interceptor", transport="process")
    with httpx.Client(transport=InterceptingTransport(interceptor, timeout=10)) as client:
        resp = client.get("https://api.example.com/user")
        print("CHILD got:", resp.status_code, resp.json())

def main():
    proc = spawn(child)

    resolver = RemoteHttp("resolver", transport="process", process=proc, auto_apply=False)

    def on_request(event):
        print("PARENT saw:", event.request.method, event.request.url)
        event.controller.respond_with(httpx.Response(200, json={"name": "John"}))

    resolver.on("request", on_request)
    resolver.apply()

    proc.join(timeout=15)
    # The transport has already torn itself down on the child's exit
    resolver.dispose()

if __name__ == "__main__":
    main()
