HTML = """
<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>kflow live</title>
  <script>
  (async () => {
    const VER = "9.1.6";
    const cdnUrl = `https://unpkg.com/vis-network@${VER}/standalone/umd/vis-network.min.js`;

    function loadScript(src) {
      return new Promise((resolve, reject) => {
        const s = document.createElement("script");
        s.src = src;
        s.defer = true;
        s.onload = () => resolve(src);
        s.onerror = () => reject(new Error("load failed: " + src));
        document.head.appendChild(s);
      });
    }

    try {
      await loadScript(cdnUrl);
    } catch (err) {
      console.warn("[vis-network] not available, graph disabled:", err);
    }
    window.startApp();
  })();
  </script>
  <style>
    body { background:#14181d; color:#e8eaed; font-family: ui-sans-serif,system-ui,Segoe UI,Arial; margin:12px; }
    .grid { display:grid; grid-template-columns: 25% 75%; gap:10px; height: 82vh; }
    .pane { border: 1px solid #2a2f36; border-radius: 12px; padding:6px; overflow:auto; }
    .pane h3 { margin:2px 0 6px 0; font-size: 14px; color:#9aa0a6; }
    .pane.focus { border-color:#00b894; }
    .right { display:grid; grid-template-rows: 35% 65%; gap:10px; }
    #net { height: 30vh; }
    li.sel { color:#ffd54f; font-weight:bold; }
    li.err { color:#e06666; }
    table { border-collapse: collapse; width:100%; font-family: ui-monospace,monospace; font-size:12px; }
    tr.sel td { color:#66bb6a; font-weight:bold; }
    td { padding:1px 6px; white-space:nowrap; }
    #status { margin-top:10px; border:1px solid #2a2f36; border-radius: 12px; padding:6px; font-family: ui-monospace,monospace; }
    #help { position:fixed; top:20%; left:15%; width:70%; background:#000; border:1px solid #888; padding:12px; white-space:pre; display:none; }
    #notice { color:#e06666; }
  </style>
</head>
<body>
  <div class="grid">
    <div class="pane" id="p-Nodes"><h3>Nodes</h3><ul id="nodes"></ul></div>
    <div class="right">
      <div class="pane" id="p-Shared"><h3>Shared</h3><div id="net"></div><ul id="shared"></ul></div>
      <div class="pane" id="p-Connections"><h3 id="conn-title">Connections</h3>
        <table id="conns"></table>
        <div id="portinfo"></div>
      </div>
    </div>
  </div>
  <div id="status"></div>
  <div id="notice"></div>
  <div id="help"></div>

  <script>
  window.startApp = function startApp(){
    const REFRESH_MS = __REFRESH_MS__;
    const esc = s => String(s ?? '').replace(/[&<>]/g, c => ({'&':'&amp;','<':'&lt;','>':'&gt;'}[c]));
    let network = null, gnodes = null, gedges = null;
    if (window.vis) {
      gnodes = new vis.DataSet([]);
      gedges = new vis.DataSet([]);
      network = new vis.Network(document.getElementById('net'), {nodes:gnodes, edges:gedges}, {
        physics:{stabilization:true, barnesHut:{gravitationalConstant:-8000, springLength:140}},
        nodes:{shadow:true, font:{color:'#e8eaed'}, scaling:{min:8, max:30}},
        edges:{smooth:{enabled:true, type:'continuous'}, font:{align:'top', color:'#e8eaed', strokeWidth:0}, scaling:{min:1, max:8}}
      });
    }

    function applyDiff(ds, items){
      const incoming = new Set(items.map(i=>i.id));
      items.forEach(i=>{ if(ds.get(i.id)) ds.update(i); else ds.add(i); });
      ds.getIds().forEach(id=>{ if(!incoming.has(id)) ds.remove(id); });
    }

    function draw(v){
      document.getElementById('nodes').innerHTML = v.nodes.map((n,i)=>
        `<li class="${i===v.selected?'sel':''} ${n.error?'err':''}" title="${esc(n.error)}">${esc(n.name)} (${n.count})</li>`).join('');
      document.getElementById('shared').innerHTML = v.shared.map((e,i)=>
        `<li class="${i===v.shared_selected?'sel':''}">${esc(e.label)}</li>`).join('');
      document.getElementById('conn-title').textContent = v.title;
      if (!v.show_details) {
        document.getElementById('conns').innerHTML = '<tr><td>Press Right or Enter to view connections for the selected node. Press h for help.</td></tr>';
      } else if (!v.connections.length) {
        document.getElementById('conns').innerHTML = '<tr><td>(no connections)</td></tr>';
      } else {
        document.getElementById('conns').innerHTML = v.connections.map((c,i)=>
          `<tr class="${i===v.conn_selected?'sel':''}"><td>${esc(c.proto)}</td><td>${esc(c.src)}</td><td>${esc(c.dst)}</td><td>${esc(c.state)}</td><td>${esc(c.port_info)}</td><td>${c.throughput==null?'':Math.round(c.throughput)+' B/s'}</td></tr>`).join('');
      }
      document.getElementById('portinfo').textContent = v.port_info ? 'Port Info: ' + v.port_info : '';
      document.getElementById('status').textContent = v.status;
      ['Nodes','Shared','Connections'].forEach(f=>document.getElementById('p-'+f).classList.toggle('focus', f===v.focus));
      const help = document.getElementById('help');
      help.style.display = v.help ? 'block' : 'none';
      help.textContent = v.help || '';
    }

    async function refresh(){
      try{
        const [view, graph, status] = await Promise.all([
          fetch('/api/view').then(r=>r.json()),
          network ? fetch('/api/graph').then(r=>r.json()) : Promise.resolve(null),
          fetch('/api/status').then(r=>r.json()),
        ]);
        draw(view);
        if (graph) { applyDiff(gnodes, graph.nodes); applyDiff(gedges, graph.edges); }
        document.getElementById('notice').textContent = status.no_pods
          ? 'No kflow-daemon pods found. Deploy the daemon DaemonSet first.' : (status.discovery_error || '');
      }catch(e){ console.error(e); }
    }

    document.addEventListener('keydown', async ev => {
      if (ev.ctrlKey || ev.metaKey || ev.altKey) return;
      if (['ArrowUp','ArrowDown','ArrowLeft','ArrowRight','Tab','Enter','Escape','Backspace'].includes(ev.key) || ev.key.length === 1) {
        ev.preventDefault();
        const r = await fetch('/api/key', {method:'POST', headers:{'Content-Type':'application/json'}, body: JSON.stringify({key: ev.key})});
        draw(await r.json());
      }
    });

    setInterval(refresh, REFRESH_MS);
    refresh();
  };
  </script>
</body>
</html>
"""

def render_html(refresh: float) -> str:
    return HTML.replace("__REFRESH_MS__", str(max(int(refresh * 1000), 200)))
