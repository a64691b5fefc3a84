"""
Main NiceGUI application for the mind-map editor.

Builds the store, viewport, sizer and interaction controller for each page,
renders the map as SVG inside ui.interactive_image and provides the toolbar,
the inline text editor, import/export dialogs and the document library.
"""

import logging
import sys

from nicegui import app, ui
from dotenv import load_dotenv

load_dotenv()

from mindmap.config import load_settings
from mindmap.conversion import (
    InvalidImportError,
    export_outline,
    export_state_json,
    export_state_yaml,
    import_state_json,
    import_state_yaml,
    outline_to_state,
)
from mindmap.documents import DocumentLibrary
from mindmap.edit import InteractionController, StyleUpdate
from mindmap.edit.controller import Connecting, Editing
from mindmap.edit.handlers import setup_edit_handlers
from mindmap.graph import NodeShape
from mindmap.persistence import load_state, make_persister
from mindmap.sizing import NodeSizer, PillowTextMeasurer
from mindmap.storage import create_backend
from mindmap.store import MapStore
from mindmap.transform import Viewport
from mindmap.view import build_scene, render_svg

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1600
CANVAS_HEIGHT = 900
CANVAS_SOURCE = (
    "data:image/svg+xml;utf8,"
    f"<svg xmlns='http://www.w3.org/2000/svg' width='{CANVAS_WIDTH}' height='{CANVAS_HEIGHT}'>"
    "<rect width='100%' height='100%' fill='%23f8fafc'/></svg>"
)

IMPORTERS = {
    'JSON': import_state_json,
    'YAML': import_state_yaml,
    'Outline': outline_to_state,
}
EXPORTERS = {
    'JSON': (export_state_json, 'mindmap.json'),
    'YAML': (export_state_yaml, 'mindmap.yaml'),
    'Outline': (export_outline, 'mindmap.md'),
}

settings = load_settings()
backend = create_backend(settings)
library = DocumentLibrary(backend)
measurer = PillowTextMeasurer(settings.font_path, settings.font_size)

# Stores of open pages; flushed on shutdown so the last edit is not lost
_open_stores = set()


def _flush_all():
    for store in list(_open_stores):
        store.flush()


app.on_shutdown(_flush_all)


@ui.page('/')
def index():
    store = MapStore(
        load_state(backend),
        persist=make_persister(backend),
        debounce=settings.debounce_seconds,
    )
    _open_stores.add(store)
    viewport = Viewport(zoom_min=settings.zoom_min, zoom_max=settings.zoom_max)
    sizer = NodeSizer(measurer, max_width=settings.max_node_width)
    controller = InteractionController(
        store, viewport, sizer,
        level_gap=settings.level_gap, node_gap=settings.node_gap,
    )
    state = {'doc_id': None, 'canvas': None, 'zoom_slider': None, 'text_input': None,
             'mode_label': None, 'doc_list': None}

    def refresh_canvas():
        mode = controller.mode
        scene = build_scene(
            store.get(), sizer,
            selected=controller.selected,
            connecting=mode.source_id if isinstance(mode, Connecting) else None,
            editing=mode.node_id if isinstance(mode, Editing) else None,
        )
        if state['canvas'] is not None:
            state['canvas'].set_content(render_svg(scene, viewport))
        handlers['sync_zoom_slider'](state['zoom_slider'])
        if state['mode_label'] is not None:
            state['mode_label'].text = type(mode).__name__
        if state['text_input'] is not None:
            state['text_input'].set_visibility(isinstance(mode, Editing))

    def on_edit_start(node_id: str, text: str):
        text_input = state['text_input']
        if text_input is None:
            return
        text_input.value = text
        text_input.set_visibility(True)
        text_input.run_method('focus')

    handlers = setup_edit_handlers(controller, refresh_canvas, on_edit_start,
                                   surface_size=(CANVAS_WIDTH, CANVAS_HEIGHT))
    run_command = handlers['run_command']

    unsubscribe = store.subscribe(refresh_canvas)

    def on_disconnect():
        unsubscribe()
        store.flush()
        _open_stores.discard(store)

    ui.context.client.on_disconnect(on_disconnect)

    # --- Dialogs ---

    def show_export_dialog():
        with ui.dialog() as dialog, ui.card().classes('w-[40rem]'):
            ui.label('Export map').classes('text-lg font-bold')
            fmt = ui.select(list(EXPORTERS), value='JSON', label='Format').classes('w-40')
            output = ui.textarea().props('outlined readonly rows=16').classes('w-full font-mono')

            def render_export():
                exporter, _ = EXPORTERS[fmt.value]
                output.value = exporter(store.get())

            def download():
                exporter, filename = EXPORTERS[fmt.value]
                ui.download(exporter(store.get()).encode('utf-8'), filename)

            fmt.on_value_change(lambda _: render_export())
            render_export()
            with ui.row().classes('w-full justify-end gap-2'):
                ui.button('Close', on_click=dialog.close).props('flat')
                ui.button('Download', on_click=download).props('color=primary')
        dialog.open()

    def show_import_dialog():
        with ui.dialog() as dialog, ui.card().classes('w-[40rem]'):
            ui.label('Import map').classes('text-lg font-bold')
            fmt = ui.select(list(IMPORTERS), value='JSON', label='Format').classes('w-40')
            source = ui.textarea(placeholder='Paste JSON, YAML or a bullet outline').props(
                'outlined rows=16').classes('w-full font-mono')
            error_label = ui.label('').classes('text-red-500 text-sm')

            def do_import():
                try:
                    imported = IMPORTERS[fmt.value](source.value or '')
                except InvalidImportError as e:
                    logger.warning(f"Import rejected: {e}")
                    error_label.text = str(e)
                    ui.notify(str(e), type='negative', position='bottom')
                    return
                controller.load(imported)
                state['doc_id'] = None
                ui.notify(f'Imported {len(imported.nodes)} nodes', type='positive')
                dialog.close()

            with ui.row().classes('w-full justify-end gap-2'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Import', on_click=do_import).props('color=primary')
        dialog.open()

    def show_rename_dialog(doc_id: str, current: str):
        with ui.dialog() as dialog, ui.card().classes('w-96'):
            ui.label('Rename map').classes('text-lg font-bold')
            name_input = ui.input('Name', value=current).classes('w-full')

            def do_rename():
                if library.rename_doc(doc_id, name_input.value or ''):
                    dialog.close()
                    refresh_documents()
                else:
                    ui.notify('Name cannot be empty', type='warning')

            with ui.row().classes('w-full justify-end gap-2'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Rename', on_click=do_rename).props('color=primary')
        dialog.open()

    # --- Document library ---

    def open_document(doc_id: str):
        loaded = library.load_doc(doc_id)
        if loaded is None:
            ui.notify('Map could not be opened', type='negative')
            return
        state['doc_id'] = doc_id
        controller.load(loaded)
        refresh_documents()

    def save_document():
        if state['doc_id'] and library.get_meta(state['doc_id']):
            library.save_doc(state['doc_id'], store.get())
        else:
            root = store.get().nodes[store.get().root_id]
            state['doc_id'] = library.create_doc(root.text, state=store.get())
        ui.notify('Map saved to library', type='positive', position='bottom')
        refresh_documents()

    def new_document():
        doc_id = library.create_doc()
        open_document(doc_id)

    def duplicate_document(doc_id: str):
        library.duplicate_doc(doc_id)
        refresh_documents()

    def delete_document(doc_id: str):
        library.delete_doc(doc_id)
        if state['doc_id'] == doc_id:
            state['doc_id'] = None
        refresh_documents()

    def refresh_documents(query: str = ''):
        container = state['doc_list']
        if container is None:
            return
        container.clear()
        with container:
            docs = library.list_docs(query)
            if not docs:
                ui.label('No saved maps yet').classes('text-gray-400 text-sm')
            for doc in docs:
                active = doc.id == state['doc_id']
                with ui.row().classes('w-full items-center gap-1 no-wrap'):
                    ui.button(doc.name, on_click=lambda d=doc.id: open_document(d)).props(
                        f'flat dense no-caps align=left {"color=primary" if active else "color=grey-8"}'
                    ).classes('grow truncate')
                    ui.button(icon='edit', on_click=lambda d=doc: show_rename_dialog(d.id, d.name)).props(
                        'flat dense round size=sm')
                    ui.button(icon='content_copy', on_click=lambda d=doc.id: duplicate_document(d)).props(
                        'flat dense round size=sm')
                    ui.button(icon='delete', on_click=lambda d=doc.id: delete_document(d)).props(
                        'flat dense round size=sm color=negative')

    # --- Layout ---

    with ui.left_drawer(value=False).classes('bg-slate-50') as drawer:
        ui.label('Maps').classes('text-lg font-bold')
        search = ui.input(placeholder='Search').props('dense outlined clearable').classes('w-full')
        search.on_value_change(lambda e: refresh_documents(e.value or ''))
        with ui.row().classes('gap-1'):
            ui.button('New', icon='add', on_click=new_document).props('dense')
            ui.button('Save', icon='save', on_click=save_document).props('dense')
        state['doc_list'] = ui.column().classes('w-full gap-1')

    with ui.header().classes('items-center gap-2 bg-slate-800 py-1'):
        ui.button(icon='menu', on_click=drawer.toggle).props('flat dense color=white')
        ui.label('Mind Map').classes('text-lg font-bold text-white')
        ui.button('Node', icon='add', on_click=controller.add_node).props('flat dense color=white') \
            .tooltip('New floating node (Ctrl+A)')
        ui.button('Child', icon='subdirectory_arrow_right', on_click=controller.add_child) \
            .props('flat dense color=white')
        ui.button('Link', icon='link', on_click=controller.start_link).props('flat dense color=white') \
            .tooltip('Then click the target node (Esc cancels)')
        ui.button('Collapse', icon='unfold_less', on_click=controller.toggle_collapse) \
            .props('flat dense color=white')
        ui.button('Delete', icon='delete', on_click=controller.delete_selected) \
            .props('flat dense color=white')
        ui.button('Auto layout', icon='account_tree', on_click=controller.relayout) \
            .props('flat dense color=white')

        ui.separator().props('vertical dark')
        color_input = ui.color_input('Color', value='#e0e7ff').props('dense dark').classes('w-32')
        shape_select = ui.select({s.value: s.value for s in NodeShape}, value=NodeShape.ROUNDED.value) \
            .props('dense dark').classes('w-28')
        ui.button('Apply', on_click=lambda: run_command(
            lambda: controller.set_style(StyleUpdate(color=color_input.value or None,
                                                     shape=shape_select.value)),
            failure='Style not applied',
        )).props('flat dense color=white')

        ui.space()
        ui.label('Zoom').classes('text-white text-xs')

        state['zoom_slider'] = ui.slider(
            min=settings.zoom_min, max=settings.zoom_max, step=0.05, value=viewport.zoom,
            on_change=handlers['handle_zoom_slider'],
        ).props('dense dark').classes('w-32')

        def reset_view():
            viewport.reset()
            refresh_canvas()

        ui.button(icon='center_focus_strong', on_click=reset_view).props('flat dense color=white') \
            .tooltip('Reset view')
        ui.button(icon='file_upload', on_click=show_import_dialog).props('flat dense color=white') \
            .tooltip('Import')
        ui.button(icon='file_download', on_click=show_export_dialog).props('flat dense color=white') \
            .tooltip('Export')
        state['mode_label'] = ui.label('Idle').classes('text-xs text-slate-300 w-24')

    def on_draft_change(e):
        controller.update_draft(e.value or '')

    state['text_input'] = ui.input('Node text', on_change=on_draft_change) \
        .props('outlined dense autofocus').classes('fixed top-16 left-1/2 w-96 z-20 bg-white')
    state['text_input'].on('keydown.enter', lambda _: controller.commit_edit())
    state['text_input'].on('keydown.escape', lambda _: controller.cancel_edit())
    state['text_input'].on('blur', lambda _: controller.commit_edit())
    state['text_input'].set_visibility(False)

    state['canvas'] = ui.interactive_image(
        CANVAS_SOURCE,
        on_mouse=handlers['handle_mouse'],
        events=['mousedown', 'mousemove', 'mouseup', 'dblclick'],
        cross=False,
    ).classes('w-full border border-slate-200')
    # element-relative point plus rendered size; the handler rescales to image space
    state['canvas'].on('wheel', handlers['handle_wheel'], js_handler='''(e) => {
        e.preventDefault();
        const r = e.currentTarget.getBoundingClientRect();
        emit({deltaY: e.deltaY, x: e.clientX - r.left, y: e.clientY - r.top,
              width: r.width, height: r.height});
    }''')
    state['canvas'].on('mouseleave', handlers['handle_mouse_leave'])

    ui.keyboard(on_key=handlers['handle_keyboard'])

    refresh_documents()
    refresh_canvas()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Mind Map',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
    )
